"""Media kind classification by file extension."""

import re
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional


class MediaType(str, Enum):
    """Kind of a file as far as grouping is concerned."""
    IMAGE = "image"
    VIDEO = "video"
    SIDECAR = "sidecar"
    UNKNOWN = "unknown"


IMAGE_EXTENSIONS = (
    '.3fr', '.ari', '.arw', '.avif', '.bmp', '.cap', '.cin', '.cr2', '.cr3',
    '.crw', '.dcr', '.dng', '.erf', '.fff', '.gif', '.heic', '.heif', '.hif',
    '.iiq', '.insp', '.jpe', '.jpeg', '.jpg', '.jxl', '.k25', '.kdc', '.mrw',
    '.nef', '.orf', '.ori', '.pef', '.png', '.psd', '.raf', '.raw', '.rw2',
    '.rwl', '.sr2', '.srf', '.srw', '.tif', '.tiff', '.webp', '.x3f',
)

VIDEO_EXTENSIONS = (
    '.3gp', '.avi', '.flv', '.insv', '.m2t', '.m2ts', '.m4v', '.mkv', '.mov',
    '.mp', '.mp4', '.mpe', '.mpeg', '.mpg', '.mts', '.vob', '.webm', '.wmv',
)

SIDECAR_EXTENSIONS = ('.xmp',)

# Pixel phones name extra motion clips PXL_xxx.MP~2, PXL_xxx.MP~3, ...
_MOTION_COPY_RE = re.compile(r'^\.mp~\d+$')


def normalize_extension(ext: str) -> str:
    """Lower-case an extension and make sure it starts with a dot."""
    ext = ext.strip().lower()
    if ext and not ext.startswith('.'):
        ext = '.' + ext
    return ext


class SupportedMedia:
    """Extension to media kind table.

    Lookups are case-insensitive. Unlisted extensions are ``MediaType.UNKNOWN``.
    """

    def __init__(self, table: Optional[Mapping[str, MediaType]] = None) -> None:
        self._table: Dict[str, MediaType] = {}
        if table is None:
            table = self._default_table()
        for ext, media_type in table.items():
            self._table[normalize_extension(ext)] = MediaType(media_type)

    @staticmethod
    def _default_table() -> Dict[str, MediaType]:
        table = {ext: MediaType.IMAGE for ext in IMAGE_EXTENSIONS}
        table.update({ext: MediaType.VIDEO for ext in VIDEO_EXTENSIONS})
        table.update({ext: MediaType.SIDECAR for ext in SIDECAR_EXTENSIONS})
        return table

    @classmethod
    def default(cls) -> "SupportedMedia":
        return cls()

    def with_overrides(self, overrides: Mapping[str, MediaType]) -> "SupportedMedia":
        """Return a copy where ``overrides`` replace (or extend) the table."""
        table = dict(self._table)
        for ext, media_type in overrides.items():
            table[normalize_extension(ext)] = MediaType(media_type)
        return SupportedMedia(table)

    def type_from_ext(self, ext: str) -> MediaType:
        ext = normalize_extension(ext)
        media_type = self._table.get(ext)
        if media_type is not None:
            return media_type
        if _MOTION_COPY_RE.match(ext):
            return MediaType.VIDEO
        return MediaType.UNKNOWN

    def is_media(self, ext: str) -> bool:
        return self.type_from_ext(ext) in (MediaType.IMAGE, MediaType.VIDEO)

    def extensions(self, media_type: MediaType) -> list[str]:
        return sorted(ext for ext, kind in self._table.items() if kind == media_type)


class ExtensionList:
    """A normalised set of extensions used as an allow-list or a deny-list."""

    def __init__(self, extensions: Iterable[str] = ()) -> None:
        self._extensions = {normalize_extension(e) for e in extensions if e.strip()}

    def __len__(self) -> int:
        return len(self._extensions)

    def __contains__(self, ext: str) -> bool:
        return normalize_extension(ext) in self._extensions

    def include(self, ext: str) -> bool:
        """An empty list includes everything."""
        return not self._extensions or ext in self

    def exclude(self, ext: str) -> bool:
        return ext in self
