"""Path utilities for consistent handling of tree-relative paths.

Every virtual tree exposes its entries as POSIX-style relative paths with
``"."`` standing for the tree root, whatever the host platform.
"""

import posixpath
import unicodedata
from pathlib import Path

ROOT = "."


def normalize_path(path: Path | str) -> str:
    """
    Normalize a path for consistent storage and comparison.

    Applies:
    - Unicode NFC normalization (canonical composition)
    - Forward slash conversion for cross-platform consistency

    Args:
        path: Path object or string to normalize

    Returns:
        Normalized path string with forward slashes and NFC Unicode normalization

    Examples:
        >>> normalize_path(Path("café/résumé.txt"))
        'café/résumé.txt'
        >>> normalize_path(r"photos\\2023\\img.jpg")
        'photos/2023/img.jpg'
    """
    normalized = unicodedata.normalize('NFC', str(path))
    return normalized.replace('\\', '/')


def clean_tree_path(path: str) -> str:
    """Normalize a tree-relative path: no leading ``./`` or ``/``, root is ``"."``."""
    path = normalize_path(path).strip('/')
    if not path:
        return ROOT
    path = posixpath.normpath(path)
    return ROOT if path in ('', '.') else path


def split_dir_base(path: str) -> tuple[str, str]:
    """Split a tree path into (directory, base name); files at the root get ``"."``.

    >>> split_dir_base("photos/summer/img.jpg")
    ('photos/summer', 'img.jpg')
    >>> split_dir_base("img.jpg")
    ('.', 'img.jpg')
    """
    directory, base = posixpath.split(path)
    return (directory or ROOT), base


def ext_of(name: str) -> str:
    """Return the final extension of a name, dot included, as written.

    Unlike ``os.path.splitext`` a leading dot is an extension too, so
    ``".xmp"`` has the extension ``".xmp"``.

    >>> ext_of("dir/img.JPG")
    '.JPG'
    >>> ext_of("PXL_1.MP~2")
    '.MP~2'
    """
    base = posixpath.basename(name)
    dot = base.rfind('.')
    return base[dot:] if dot >= 0 else ''


def strip_ext(name: str) -> str:
    """Remove the final extension of a name (the directory part is kept)."""
    ext = ext_of(name)
    return name[:-len(ext)] if ext else name
