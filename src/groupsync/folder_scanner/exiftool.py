"""ExifTool wrapper for date extraction from any media format.

Pillow only understands still images; ExifTool also reads RAW files and video
containers. The tool is optional and enabled from config.
"""

import json
import logging
import re
import shutil
import subprocess
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from groupsync.common import ParseError
from .errors import ToolNotFoundError

logger = logging.getLogger(__name__)

# Tags in priority order
DATE_TAGS = ("DateTimeOriginal", "CreateDate", "MediaCreateDate", "ModifyDate")

_EXIF_DATE_RE = re.compile(
    r'^(\d{4}):(\d{2}):(\d{2})[ T](\d{2}):(\d{2}):(\d{2})(?:\.\d+)?\s*(Z|[+-]\d{2}:?\d{2})?$'
)

INSTALL_INSTRUCTIONS = (
    "ExifTool is optional. Install it:\n"
    "  - Windows: Download from https://exiftool.org/\n"
    "  - macOS: brew install exiftool\n"
    "  - Linux: sudo apt-get install libimage-exiftool-perl"
)


class ExifToolConfig(BaseModel):
    """ExifTool settings."""

    model_config = ConfigDict(extra='forbid')

    enabled: bool = Field(default=False, description="Read dates with the external exiftool program")
    path: Optional[str] = Field(default=None, description="exiftool executable (default: found on PATH)")
    timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone for dates without offset (default: local time)"
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout per file")

    @field_validator('timezone')
    @classmethod
    def check_timezone(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone {v!r}") from e
        return v


def check_tool_availability(executable: str = "exiftool") -> bool:
    """True when the exiftool executable can be found."""
    return shutil.which(executable) is not None


def parse_exif_datetime(value: str, default_tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Parse an EXIF style timestamp.

    ``"2023:08:01 14:05:00"`` gets ``default_tz`` (naive when None);
    ``"2023:08:01 14:05:00+02:00"`` keeps its own offset. Zeroed dates
    (``0000:00:00 00:00:00``) yield None.
    """
    m = _EXIF_DATE_RE.match(value.strip())
    if not m:
        return None
    try:
        parsed = datetime(*(int(g) for g in m.groups()[:6]))
    except ValueError:
        return None
    offset = m.group(7)
    if offset == 'Z':
        return parsed.replace(tzinfo=timezone.utc)
    if offset:
        sign = 1 if offset[0] == '+' else -1
        digits = offset[1:].replace(':', '')
        delta = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
        return parsed.replace(tzinfo=timezone(sign * delta))
    if default_tz is not None:
        return parsed.replace(tzinfo=default_tz)
    return parsed


class ExifTool:
    """Runs exiftool on tree files.

    Raises:
        ToolNotFoundError: When the executable cannot be found
    """

    def __init__(self, config: Optional[ExifToolConfig] = None) -> None:
        self.config = config or ExifToolConfig(enabled=True)
        executable = self.config.path or "exiftool"
        resolved = shutil.which(executable)
        if resolved is None:
            logger.error(f"Tool not found: {{'tool': 'exiftool', 'path': {executable!r}}}")
            raise ToolNotFoundError(
                f"Tool 'exiftool' is enabled in config but not available.\n\n{INSTALL_INSTRUCTIONS}",
                tool="exiftool",
            )
        self.executable = resolved
        self.timezone: Optional[tzinfo] = ZoneInfo(self.config.timezone) if self.config.timezone else None
        logger.info(f"Tool available: {{'tool': 'exiftool', 'path': {resolved!r}}}")

    def read_tags(self, tree, name: str) -> Dict[str, str]:
        """Return exiftool's date tags for one file of a tree."""
        command = [self.executable, "-json", "-api", "QuickTimeUTC"]
        command += [f"-{tag}" for tag in DATE_TAGS]
        local = tree.local_path(name) if hasattr(tree, "local_path") else None
        if local is not None:
            command.append(str(local))
            payload = None
        else:
            command.append("-")
            with tree.open(name) as stream:
                payload = stream.read()

        try:
            result = subprocess.run(
                command,
                input=payload,
                capture_output=True,
                timeout=self.config.timeout_seconds,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode('utf-8', errors='replace').strip() if e.stderr else ''
            raise ParseError(f"exiftool failed: {stderr or e}", file=name) from e
        except subprocess.TimeoutExpired as e:
            raise ParseError("exiftool timed out", file=name) from e

        try:
            records = json.loads(result.stdout or b"[]")
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid exiftool output: {e}", file=name) from e
        if not records:
            return {}
        return {k: str(v) for k, v in records[0].items() if k in DATE_TAGS}

    def date_taken(self, tree, name: str) -> Optional[datetime]:
        tags = self.read_tags(tree, name)
        for tag in DATE_TAGS:
            if tag in tags:
                parsed = parse_exif_datetime(tags[tag], self.timezone)
                if parsed is not None:
                    return parsed
        return None
