"""Capture date extraction.

The date an asset was taken comes from its file name, from its embedded
EXIF data, or both in a configured order.
"""

import logging
import posixpath
import re
from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from PIL import Image, UnidentifiedImageError

from .exiftool import ExifTool, parse_exif_datetime

logger = logging.getLogger(__name__)

# Pillow tag ids
EXIF_IFD = 0x8769
TAG_DATETIME = 0x0132
TAG_DATETIME_ORIGINAL = 0x9003
TAG_DATETIME_DIGITIZED = 0x9004
TAG_OFFSET_TIME_ORIGINAL = 0x9011

_NAME_DATE_RE = re.compile(
    r'(?<!\d)((?:18|19|20)\d{2})[-_.]?(0[1-9]|1[0-2])[-_.]?(0[1-9]|[12]\d|3[01])'
    r'(?:[-_. T]?([01]\d|2[0-3])[-_.:h]?([0-5]\d)(?:[-_.:m]?([0-5]\d))?)?'
)


class DateMethod(str, Enum):
    """Where the capture date comes from."""
    NONE = "NONE"
    FILENAME = "FILENAME"
    EXIF = "EXIF"
    FILENAME_EXIF = "FILENAME-EXIF"
    EXIF_FILENAME = "EXIF-FILENAME"


@dataclass
class Metadata:
    """Metadata extracted for one asset."""
    date_taken: Optional[datetime] = None
    date_source: Optional[str] = None


def take_time_from_name(name: str, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Find a timestamp in a file name.

    Examples:
        >>> take_time_from_name("PXL_20210102_221126856.jpg")
        datetime.datetime(2021, 1, 2, 22, 11, 26)
        >>> take_time_from_name("photos/summer 2023/20230801-001.jpg")
        datetime.datetime(2023, 8, 1, 0, 0)
        >>> take_time_from_name("root_01.jpg") is None
        True
    """
    base = posixpath.basename(name)
    for m in _NAME_DATE_RE.finditer(base):
        fields = [int(g) if g else 0 for g in m.groups()]
        try:
            taken = datetime(*fields)
        except ValueError:
            continue
        return taken.replace(tzinfo=tz) if tz is not None else taken
    return None


def _exif_date_from_stream(stream) -> Optional[datetime]:
    with Image.open(stream) as img:
        exif = img.getexif()
        if not exif:
            return None
        sub_ifd = exif.get_ifd(EXIF_IFD)
        offset = sub_ifd.get(TAG_OFFSET_TIME_ORIGINAL)
        for value in (
            sub_ifd.get(TAG_DATETIME_ORIGINAL),
            sub_ifd.get(TAG_DATETIME_DIGITIZED),
            exif.get(TAG_DATETIME),
        ):
            if not value:
                continue
            text = str(value).strip().rstrip('\x00')
            if offset and value == sub_ifd.get(TAG_DATETIME_ORIGINAL):
                text += str(offset).strip().rstrip('\x00')
            parsed = parse_exif_datetime(text)
            if parsed is not None:
                return parsed
    return None


class MetadataReader:
    """Derives the capture date of tree files.

    Args:
        method: Which sources to consult, in which order
        filename_timezone: IANA zone for dates found in names (naive local time when None)
        exiftool: Optional ExifTool used instead of Pillow for EXIF dates
    """

    def __init__(
        self,
        method: DateMethod = DateMethod.FILENAME,
        filename_timezone: Optional[str] = None,
        exiftool: Optional[ExifTool] = None,
    ) -> None:
        self.method = DateMethod(method)
        self.filename_tz: Optional[tzinfo] = ZoneInfo(filename_timezone) if filename_timezone else None
        self.exiftool = exiftool

    def read(self, tree, name: str) -> Metadata:
        """Extract metadata for ``name``.

        Raises:
            OSError: When the file cannot be read
            groupsync.common.ParseError: When exiftool fails on the file
        """
        for source in self._sources():
            if source == "filename":
                taken = take_time_from_name(name, self.filename_tz)
            else:
                taken = self._date_from_exif(tree, name)
            if taken is not None:
                return Metadata(date_taken=taken, date_source=source)
        return Metadata()

    def _sources(self) -> tuple[str, ...]:
        return {
            DateMethod.NONE: (),
            DateMethod.FILENAME: ("filename",),
            DateMethod.EXIF: ("exif",),
            DateMethod.FILENAME_EXIF: ("filename", "exif"),
            DateMethod.EXIF_FILENAME: ("exif", "filename"),
        }[self.method]

    def _date_from_exif(self, tree, name: str) -> Optional[datetime]:
        if self.exiftool is not None:
            return self.exiftool.date_taken(tree, name)
        with tree.open(name) as stream:
            try:
                return _exif_date_from_stream(stream)
            except UnidentifiedImageError:
                logger.debug(f"No EXIF reader for file: {{'file': {name!r}}}")
            except (SyntaxError, ValueError, KeyError) as e:
                logger.warning(f"Failed to extract EXIF: {{'file': {name!r}, 'error': {str(e)!r}}}")
        return None

    def close(self) -> None:
        """Release external resources."""
        self.exiftool = None
