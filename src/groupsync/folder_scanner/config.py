"""Configuration models for the folder scanner."""

from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from groupsync.common import LoggingConfig
from .albums import AlbumMode
from .date_range import DateRange
from .exiftool import ExifToolConfig
from .media_types import MediaType, normalize_extension
from .metadata import DateMethod
from .name_matcher import DEFAULT_BANNED_FILES


def _split_list(v):
    # Env overrides and CLI flags may hand over "a,b,c"
    if isinstance(v, str):
        return [item.strip() for item in v.split(',') if item.strip()]
    return v


class ImportFolderConfig(BaseModel):
    """Options of one folder import scan."""

    model_config = ConfigDict(extra='forbid')

    recursive: bool = Field(
        default=True,
        description="Descend into sub-directories"
    )
    banned_files: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BANNED_FILES),
        description="Glob patterns of files to skip; a trailing '/' bans a whole directory"
    )
    included_extensions: List[str] = Field(
        default_factory=list,
        description="Only import these extensions (empty: all supported)"
    )
    excluded_extensions: List[str] = Field(
        default_factory=list,
        description="Never import these extensions"
    )
    date_range: DateRange = Field(
        default_factory=DateRange,
        description="Only import assets taken in this range: YYYY, YYYY-MM, YYYY-MM-DD or 'start,end'"
    )
    date_method: DateMethod = Field(
        default=DateMethod.FILENAME,
        description="Capture date source: NONE, FILENAME, EXIF, FILENAME-EXIF or EXIF-FILENAME"
    )
    filename_timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone of dates found in file names (default: local time)"
    )
    ignore_sidecar_files: bool = Field(
        default=False,
        description="Do not attach XMP sidecar files"
    )
    folder_as_album: AlbumMode = Field(
        default=AlbumMode.NONE,
        description="Derive album names from folders: NONE, FOLDER or PATH"
    )
    album_path_separator: str = Field(
        default=" ",
        description="Separator between path components in PATH album mode"
    )
    into_album: Optional[str] = Field(
        default=None,
        description="Put every asset in this album"
    )
    media_types: Dict[str, MediaType] = Field(
        default_factory=dict,
        description="Extension to media type overrides, e.g. {'.mpo' = 'image'}"
    )
    group_queue_size: int = Field(
        default=1,
        ge=0,
        description="Groups buffered ahead of the consumer (0: unbounded)"
    )
    exiftool: ExifToolConfig = Field(default_factory=ExifToolConfig)

    @field_validator('banned_files', mode='before')
    @classmethod
    def split_banned(cls, v):
        return _split_list(v)

    @field_validator('included_extensions', 'excluded_extensions', mode='before')
    @classmethod
    def normalize_extensions(cls, v):
        v = _split_list(v)
        if isinstance(v, list):
            return [normalize_extension(ext) for ext in v if isinstance(ext, str) and ext.strip()]
        return v

    @field_validator('media_types', mode='before')
    @classmethod
    def normalize_media_types(cls, v):
        if isinstance(v, dict):
            return {normalize_extension(ext): kind for ext, kind in v.items()}
        return v

    @field_validator('date_range', mode='before')
    @classmethod
    def parse_date_range(cls, v):
        # Env overrides turn "2023" into an int and "a,b" into a list
        if isinstance(v, int):
            v = str(v)
        elif isinstance(v, list):
            v = ",".join(str(part) for part in v)
        if v is None or isinstance(v, str):
            return DateRange.parse(v)
        return v

    @field_validator('date_method', 'folder_as_album', mode='before')
    @classmethod
    def upper_case(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('filename_timezone')
    @classmethod
    def check_timezone(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone {v!r}") from e
        return v

    @field_validator('into_album')
    @classmethod
    def empty_album_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v if v and v.strip() else None

    @model_validator(mode='after')
    def check_album_options(self) -> "ImportFolderConfig":
        if self.into_album and self.folder_as_album != AlbumMode.NONE:
            raise ValueError(
                f"into_album cannot be combined with folder_as_album={self.folder_as_album.value}"
            )
        return self


class FolderScannerSettings(BaseModel):
    """Root configuration for the folder scanner."""

    model_config = ConfigDict(extra='forbid')

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    scanner: ImportFolderConfig = Field(default_factory=ImportFolderConfig)
