"""Asset data model handed to the consumer of a scan."""

import logging
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, List, Optional

from .metadata import Metadata

logger = logging.getLogger(__name__)


@dataclass
class SidecarFile:
    """A metadata sidecar (XMP) attached to a group, not read by the scanner."""
    tree: Any
    file_name: str


@dataclass
class LocalAlbum:
    """An album an asset belongs to.

    ``path`` is the tree path the title was derived from.
    """
    path: str
    title: str


class LocalAssetFile:
    """One media file of a tree with its extracted metadata.

    The consumer owns the asset once it is delivered and must ``close()`` it
    (or use it as a context manager).
    """

    def __init__(
        self,
        tree: Any,
        file_name: str,
        file_size: int = 0,
        metadata: Optional[Metadata] = None,
    ) -> None:
        self.tree = tree
        self.file_name = file_name
        self.title = posixpath.basename(file_name)
        self.file_size = file_size
        self.metadata = metadata or Metadata()
        self.sidecar: Optional[SidecarFile] = None
        self._stream: Optional[BinaryIO] = None
        self.closed = False

    @property
    def date_taken(self):
        return self.metadata.date_taken

    def open(self) -> BinaryIO:
        """Return the content stream, opened once and cached until ``close()``."""
        if self.closed:
            raise ValueError(f"Asset {self.file_name!r} is closed")
        if self._stream is None:
            self._stream = self.tree.open(self.file_name)
        return self._stream

    def close(self) -> None:
        """Release the content stream; safe to call more than once."""
        if self._stream is not None:
            try:
                self._stream.close()
            except OSError as e:
                logger.warning(f"Failed to close asset stream: {{'file': {self.file_name!r}, 'error': {str(e)!r}}}")
            self._stream = None
        self.closed = True

    def __enter__(self) -> "LocalAssetFile":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        tree_name = getattr(self.tree, "name", "")
        return f"LocalAssetFile({tree_name!r}, {self.file_name!r}, size={self.file_size})"


class GroupKind(str, Enum):
    """How the assets of a group relate to each other."""
    NONE = "none"
    MOTION_PHOTO = "motion photo"


@dataclass
class AssetGroup:
    """Assets imported together.

    A ``NONE`` group holds exactly one asset; a ``MOTION_PHOTO`` group holds
    the still image followed by its motion video.
    """
    kind: GroupKind
    assets: List[LocalAssetFile]
    cover_index: int = 0
    sidecar: Optional[SidecarFile] = None
    albums: List[LocalAlbum] = field(default_factory=list)

    @property
    def primary(self) -> LocalAssetFile:
        return self.assets[self.cover_index]

    def validate(self) -> None:
        expected = 2 if self.kind == GroupKind.MOTION_PHOTO else 1
        if len(self.assets) != expected:
            raise ValueError(
                f"{self.kind.value} group needs {expected} asset(s), got {len(self.assets)}"
            )
        if not 0 <= self.cover_index < len(self.assets):
            raise ValueError(f"Cover index {self.cover_index} out of range")

    def close(self) -> None:
        for asset in self.assets:
            asset.close()

    def __repr__(self) -> str:
        names = [a.file_name for a in self.assets]
        return f"AssetGroup({self.kind.value!r}, {names!r}, albums={[a.title for a in self.albums]!r})"
