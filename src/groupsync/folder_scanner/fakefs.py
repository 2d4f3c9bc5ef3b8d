"""In-memory trees, including trees rebuilt from archive listings.

A listing is the concatenated output of ``unzip -l`` (or ``tar tv``) over a
set of archives, as users typically send it in bug reports::

    Archive: takeout-001.zip
      2104348  07-20-2023 00:00   Takeout/Google Photos/2020 - Costa Rica/IMG_3235.MP4

Each ``Archive:`` header starts (or resumes) a named tree; every following
entry line adds a file of the given size and modification time to it. The
files have no content, which is enough to exercise grouping logic on real
world layouts.
"""

import io
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional

from groupsync.common import clean_tree_path
from .errors import ManifestParseError
from .trees import IndexedTree, TreeStat

logger = logging.getLogger(__name__)

# `  2104348  07-20-2023 00:00   Takeout/Google Photos/2020 - Costa Rica/IMG_3235.MP4`
# tar listings carry a permission/owner prefix; the date field starts with a
# digit so that the "N files" totals line is not taken for an entry
_ENTRY_RE = re.compile(r'(-rw-r--r-- 0/0\s+)?(\d+)\s+(\d.{15})\s+(.*)$')
_HEADER = "Archive:"
_MIN_ENTRY_LENGTH = 30

# unzip -l default layout
DEFAULT_DATE_FORMAT = "%m-%d-%Y %H:%M"


class FakeTree(IndexedTree):
    """A named tree held in memory.

    Files added without ``data`` read as empty streams.
    """

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._data: Dict[str, bytes] = {}

    def add_file(
        self,
        path: str,
        size: Optional[int] = None,
        modified: Optional[datetime] = None,
        data: bytes = b"",
    ) -> "FakeTree":
        """Add a file (and its parent directories); returns the tree for chaining."""
        if size is None:
            size = len(data)
        clean = self._add_file(path, TreeStat(size=size, modified=modified))
        self._data[clean] = data
        return self

    def add_dir(self, path: str) -> "FakeTree":
        self._add_dir(path)
        return self

    def open(self, path: str) -> BinaryIO:
        self.stat(path)
        return io.BytesIO(self._data.get(clean_tree_path(path), b""))


def _read_entry_line(line: str, date_format: str) -> tuple[str, int, Optional[datetime]]:
    """Parse one listing line into (path, size, modified); path is empty when not an entry."""
    if len(line) < _MIN_ENTRY_LENGTH:
        return "", 0, None
    m = _ENTRY_RE.search(line)
    if not m:
        return "", 0, None
    size = int(m.group(2))
    try:
        modified = datetime.strptime(m.group(3).strip(), date_format)
    except ValueError:
        modified = None
    return m.group(4).strip(), size, modified


def scan_file_list_reader(lines: Iterable[str], date_format: str = DEFAULT_DATE_FORMAT) -> List[FakeTree]:
    """Build one tree per archive named in a listing.

    Returns:
        Trees sorted by archive name
    """
    trees: Dict[str, FakeTree] = {}
    current: Optional[FakeTree] = None
    skipped = 0

    for line in lines:
        line = line.rstrip("\r\n")
        if line.startswith(_HEADER):
            archive_name = line[len(_HEADER):].strip()
            current = trees.get(archive_name)
            if current is None:
                current = FakeTree(archive_name)
                trees[archive_name] = current
            continue

        path, size, modified = _read_entry_line(line, date_format)
        if not path:
            continue
        if current is None:
            raise ManifestParseError("File entry before any 'Archive:' header", line=line)
        if path.endswith('/'):
            current.add_dir(path)
            continue
        try:
            current.add_file(path, size=size, modified=modified)
        except ValueError as e:
            skipped += 1
            logger.warning(f"Skipping listing entry: {{'archive': {current.name!r}, 'path': {path!r}, 'error': {str(e)!r}}}")

    logger.debug(f"Listing parsed: {{'archives': {len(trees)}, 'skipped': {skipped}}}")
    return [trees[name] for name in sorted(trees)]


def scan_string_list(text: str, date_format: str = DEFAULT_DATE_FORMAT) -> List[FakeTree]:
    """Build trees from a listing held in a string."""
    return scan_file_list_reader(io.StringIO(text), date_format)


def scan_file_list(path: Path | str, date_format: str = DEFAULT_DATE_FORMAT) -> List[FakeTree]:
    """Build trees from a listing file."""
    try:
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            return scan_file_list_reader(f, date_format)
    except OSError as e:
        raise ManifestParseError(f"Cannot read listing: {e}", path=str(path)) from e
