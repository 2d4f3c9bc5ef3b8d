"""Read-only virtual file trees.

A tree is anything that can enumerate its directories and files as
POSIX-style relative paths and hand out file streams. The scanner only relies
on the ``VirtualTree`` protocol; concrete providers cover real directories and
zip/tar archives read in place (see ``fakefs`` for the manifest-backed one).
"""

import logging
import os
import posixpath
import tarfile
import threading
import zipfile
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Iterator, Optional, Protocol, Set, runtime_checkable

from groupsync.common import clean_tree_path, normalize_path
from groupsync.common.path_utils import ROOT
from .errors import TreeAccessError

logger = logging.getLogger(__name__)

DescendFn = Callable[[str], bool]


@dataclass(frozen=True)
class TreeEntry:
    """One walked entry: a tree-relative path and whether it is a directory."""
    path: str
    is_dir: bool


@dataclass(frozen=True)
class TreeStat:
    """Size and modification time of a file inside a tree."""
    size: int
    modified: Optional[datetime] = None


@runtime_checkable
class VirtualTree(Protocol):
    """Capabilities the scanner needs from a source of files.

    ``walk`` yields the root ``"."`` first, then entries depth-first with names
    sorted inside each directory. When ``descend`` is given and returns False
    for a sub-directory, that directory and its whole subtree are skipped.
    """

    @property
    def name(self) -> str:
        ...

    def walk(self, descend: Optional[DescendFn] = None) -> Iterator[TreeEntry]:
        ...

    def stat(self, path: str) -> TreeStat:
        ...

    def open(self, path: str) -> BinaryIO:
        ...

    def local_path(self, path: str) -> Optional[Path]:
        ...


def _join(directory: str, name: str) -> str:
    return name if directory == ROOT else posixpath.join(directory, name)


class IndexedTree:
    """Tree whose listing is known up front (archives, manifests, memory).

    Subclasses register entries with ``_add_dir`` / ``_add_file`` and implement
    ``open``.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._children: Dict[str, Set[str]] = {ROOT: set()}
        self._files: Dict[str, TreeStat] = {}

    @property
    def name(self) -> str:
        return self._name

    def _add_dir(self, path: str) -> str:
        path = clean_tree_path(path)
        if path in self._files:
            raise ValueError(f"{path!r} is already a file in tree {self._name!r}")
        while path != ROOT and path not in self._children:
            self._children[path] = set()
            parent, base = posixpath.split(path)
            parent = parent or ROOT
            self._children.setdefault(parent, set()).add(base)
            path = parent
        return path

    def _add_file(self, path: str, stat: TreeStat) -> str:
        path = clean_tree_path(path)
        if path == ROOT or path in self._children:
            raise ValueError(f"{path!r} is a directory in tree {self._name!r}")
        parent, base = posixpath.split(path)
        parent = parent or ROOT
        self._add_dir(parent)
        self._children[parent].add(base)
        self._files[path] = stat
        return path

    def walk(self, descend: Optional[DescendFn] = None) -> Iterator[TreeEntry]:
        yield TreeEntry(ROOT, True)
        yield from self._walk_dir(ROOT, descend)

    def _walk_dir(self, directory: str, descend: Optional[DescendFn]) -> Iterator[TreeEntry]:
        for child in sorted(self._children.get(directory, ())):
            path = _join(directory, child)
            if path in self._children:
                if descend is not None and not descend(path):
                    continue
                yield TreeEntry(path, True)
                yield from self._walk_dir(path, descend)
            else:
                yield TreeEntry(path, False)

    def stat(self, path: str) -> TreeStat:
        path = clean_tree_path(path)
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(f"{path!r} not found in tree {self._name!r}") from None

    def exists(self, path: str) -> bool:
        path = clean_tree_path(path)
        return path in self._files or path in self._children

    def local_path(self, path: str) -> Optional[Path]:
        return None

    def open(self, path: str) -> BinaryIO:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r}, files={len(self._files)})"


class DirTree:
    """A real directory on disk.

    Tree paths are NFC-normalized; the names found on disk are remembered
    during ``walk`` so files stored in another normal form (NFD names copied
    from macOS) can still be opened.
    """

    def __init__(self, root: Path | str, name: Optional[str] = None) -> None:
        self.root = Path(root)
        self._name = name or self.root.name or normalize_path(self.root)
        # Tree path -> relative path as stored on disk, when they differ
        self._disk_names: Dict[str, str] = {}

    @property
    def name(self) -> str:
        return self._name

    def walk(self, descend: Optional[DescendFn] = None) -> Iterator[TreeEntry]:
        if not self.root.is_dir():
            raise TreeAccessError(f"Not a directory: {self.root}", tree=self._name)
        yield TreeEntry(ROOT, True)
        yield from self._walk_dir(ROOT, descend)

    def _walk_dir(self, directory: str, descend: Optional[DescendFn]) -> Iterator[TreeEntry]:
        disk_dir = self._disk_names.get(directory, directory)
        full_dir = self.root if directory == ROOT else self.root / disk_dir
        try:
            with os.scandir(full_dir) as it:
                entries = sorted(
                    (normalize_path(entry.name), entry.name, entry.is_dir(follow_symlinks=False))
                    for entry in it
                )
        except OSError as e:
            raise TreeAccessError(
                f"Cannot list directory: {e}", tree=self._name, directory=directory
            ) from e

        for entry_name, disk_name, is_dir in entries:
            path = _join(directory, entry_name)
            disk_path = _join(disk_dir, disk_name)
            if disk_path != path:
                self._disk_names[path] = disk_path
            if is_dir:
                if descend is not None and not descend(path):
                    continue
                yield TreeEntry(path, True)
                yield from self._walk_dir(path, descend)
            else:
                yield TreeEntry(path, False)

    def local_path(self, path: str) -> Optional[Path]:
        path = clean_tree_path(path)
        if path == ROOT:
            return self.root
        return self.root / self._disk_names.get(path, path)

    def stat(self, path: str) -> TreeStat:
        st = os.stat(self.local_path(path))
        return TreeStat(size=st.st_size, modified=datetime.fromtimestamp(st.st_mtime))

    def open(self, path: str) -> BinaryIO:
        return open(self.local_path(path), 'rb')

    def __repr__(self) -> str:
        return f"DirTree({str(self.root)!r})"


class ArchiveFormat(Enum):
    """Supported archive formats."""
    ZIP = "zip"
    TAR = "tar"
    TAR_GZ = "tar.gz"
    TAR_BZ2 = "tar.bz2"
    TGZ = "tgz"
    TBZ2 = "tbz2"


# Compound extensions first so that .tar.gz is not taken for .gz
ARCHIVE_EXTENSIONS = {
    '.tar.gz': ArchiveFormat.TAR_GZ,
    '.tar.bz2': ArchiveFormat.TAR_BZ2,
    '.tgz': ArchiveFormat.TGZ,
    '.tbz2': ArchiveFormat.TBZ2,
    '.tar': ArchiveFormat.TAR,
    '.zip': ArchiveFormat.ZIP,
}


def detect_archive_format(path: Path | str) -> Optional[ArchiveFormat]:
    """Detect archive format from file extension."""
    name = Path(path).name.lower()
    for ext, fmt in ARCHIVE_EXTENSIONS.items():
        if name.endswith(ext):
            return fmt
    return None


class ArchiveTree(IndexedTree):
    """A zip or tar archive browsed without extracting it.

    The archive is indexed when the tree is created. Streams returned by
    ``open`` read straight from the archive.
    """

    def __init__(self, path: Path | str, name: Optional[str] = None) -> None:
        self.path = Path(path)
        super().__init__(name or self.path.name)
        self.format = detect_archive_format(self.path)
        if self.format is None:
            raise TreeAccessError(f"Unsupported archive format: {self.path}", tree=self.name)
        self._members: Dict[str, object] = {}
        self._lock = threading.Lock()
        try:
            if self.format is ArchiveFormat.ZIP:
                self._archive = zipfile.ZipFile(self.path)
                self._index_zip()
            else:
                self._archive = tarfile.open(self.path, 'r:*')
                self._index_tar()
        except (OSError, zipfile.BadZipFile, tarfile.TarError) as e:
            raise TreeAccessError(f"Cannot read archive: {e}", tree=self.name) from e
        logger.debug(f"Indexed archive: {{'archive': {self.name!r}, 'files': {len(self._files)}}}")

    def _index_zip(self) -> None:
        for info in self._archive.infolist():
            if info.is_dir():
                self._add_dir(info.filename)
                continue
            try:
                modified = datetime(*info.date_time)
            except ValueError:
                modified = None
            path = self._add_file(info.filename, TreeStat(size=info.file_size, modified=modified))
            self._members[path] = info

    def _index_tar(self) -> None:
        for member in self._archive.getmembers():
            if member.isdir():
                self._add_dir(member.name)
            elif member.isfile():
                path = self._add_file(
                    member.name,
                    TreeStat(size=member.size, modified=datetime.fromtimestamp(member.mtime)),
                )
                self._members[path] = member

    def open(self, path: str) -> BinaryIO:
        path = clean_tree_path(path)
        member = self._members.get(path)
        if member is None:
            raise FileNotFoundError(f"{path!r} not found in archive {self.name!r}")
        with self._lock:
            if self.format is ArchiveFormat.ZIP:
                return self._archive.open(member)
            stream = self._archive.extractfile(member)
        if stream is None:
            raise FileNotFoundError(f"{path!r} is not a regular file in archive {self.name!r}")
        return stream

    def close(self) -> None:
        self._archive.close()

    def __enter__(self) -> "ArchiveTree":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def open_tree(path: Path | str) -> VirtualTree:
    """Open a directory or a supported archive as a tree."""
    path = Path(path)
    if path.is_file() and detect_archive_format(path) is not None:
        return ArchiveTree(path)
    if path.is_dir():
        return DirTree(path)
    raise TreeAccessError(f"Not a directory or supported archive: {path}", tree=path.name)
