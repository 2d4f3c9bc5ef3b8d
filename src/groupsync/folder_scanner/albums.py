"""Album names derived from asset paths."""

from enum import Enum
from typing import Any, List, Optional

from groupsync.common import split_dir_base
from groupsync.common.path_utils import ROOT
from .assets import LocalAlbum
from .errors import ConfigurationError


class AlbumMode(str, Enum):
    """How folders turn into albums."""
    NONE = "NONE"
    FOLDER = "FOLDER"
    PATH = "PATH"


class AlbumNamer:
    """Computes the albums of an asset.

    Args:
        mode: ``FOLDER`` uses the parent directory name, ``PATH`` the whole
            directory path prefixed by the tree name
        separator: Joins path components in ``PATH`` mode
        into_album: Fixed album for every asset; excludes any folder mode

    Raises:
        ConfigurationError: When ``into_album`` is combined with a folder mode
    """

    def __init__(
        self,
        mode: AlbumMode = AlbumMode.NONE,
        separator: str = " ",
        into_album: Optional[str] = None,
    ) -> None:
        self.mode = AlbumMode(mode)
        self.separator = separator
        self.into_album = into_album or None
        if self.into_album and self.mode != AlbumMode.NONE:
            raise ConfigurationError(
                "A fixed album cannot be combined with folder albums",
                into_album=self.into_album,
                mode=self.mode.value,
            )

    def albums_for(self, tree: Any, file_name: str) -> List[LocalAlbum]:
        """Return the albums of ``file_name``.

        ``LocalAlbum.path`` is the asset itself for a fixed album and in
        ``FOLDER`` mode, its directory in ``PATH`` mode.
        """
        if self.into_album:
            return [LocalAlbum(path=file_name, title=self.into_album)]
        title = self.title_for(getattr(tree, "name", ""), file_name)
        if title is None:
            return []
        if self.mode == AlbumMode.FOLDER:
            return [LocalAlbum(path=file_name, title=title)]
        directory, _ = split_dir_base(file_name)
        return [LocalAlbum(path=directory, title=title)]

    def title_for(self, tree_name: str, file_name: str) -> Optional[str]:
        """Album title for a file of the named tree, None in ``NONE`` mode.

        >>> AlbumNamer(AlbumMode.PATH, "#").title_for("Lib", "a/b/c.jpg")
        'Lib#a#b'
        >>> AlbumNamer(AlbumMode.FOLDER).title_for("Lib", "a/b/c.jpg")
        'b'
        """
        if self.mode == AlbumMode.NONE:
            return None
        directory, _ = split_dir_base(file_name)
        if directory == ROOT:
            return tree_name
        parts: List[str] = directory.split('/')
        if self.mode == AlbumMode.FOLDER:
            return parts[-1]
        return self.separator.join([tree_name] + parts)
