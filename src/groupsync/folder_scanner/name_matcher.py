"""Banned file name matching.

Patterns are shell globs compared case-insensitively against each component
of a tree path:

- ``SYNOFILE_THUMB_*.*`` bans any file or directory whose name matches.
- ``@eaDir/`` (trailing slash) bans every file below a directory of that name.
"""

import fnmatch
import re
from typing import Iterable, List, Pattern

DEFAULT_BANNED_FILES = [
    '@eaDir/',
    '@__thumb/',
    'SYNOFILE_THUMB_*.*',
    'Lightroom Catalog/',
    'thumbnails/',
    '.DS_Store',
    '._*.*',
    '.photostructure/',
]


class NameMatcher:
    """Matches tree paths against a list of banned name patterns."""

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self.patterns: List[str] = []
        self._dir_patterns: List[Pattern[str]] = []
        self._name_patterns: List[Pattern[str]] = []
        for pattern in patterns:
            self.add(pattern)

    @classmethod
    def default(cls) -> "NameMatcher":
        return cls(DEFAULT_BANNED_FILES)

    def add(self, pattern: str) -> None:
        pattern = pattern.strip().replace('\\', '/')
        if not pattern.strip('/'):
            raise ValueError(f"Empty banned file pattern: {pattern!r}")
        self.patterns.append(pattern)
        compiled = re.compile(fnmatch.translate(pattern.strip('/')), re.IGNORECASE)
        if pattern.endswith('/'):
            self._dir_patterns.append(compiled)
        else:
            self._name_patterns.append(compiled)

    def match(self, path: str) -> bool:
        """True when ``path`` (a tree-relative file path) is banned."""
        parts = [p for p in path.replace('\\', '/').split('/') if p and p != '.']
        if not parts:
            return False
        directories = parts[:-1]
        for compiled in self._dir_patterns:
            if any(compiled.match(part) for part in directories):
                return True
        for compiled in self._name_patterns:
            if any(compiled.match(part) for part in parts):
                return True
        return False

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def __repr__(self) -> str:
        return f"NameMatcher({self.patterns!r})"
