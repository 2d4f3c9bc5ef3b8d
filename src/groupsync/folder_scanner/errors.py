"""Error classes for the folder scanner."""

from groupsync.common import GroupSyncError, FileProcessingError, ParseError
from groupsync.common import ToolNotFoundError as _CommonToolNotFoundError


class ScannerError(GroupSyncError):
    """Base error for folder scanner operations."""
    pass


class ConfigurationError(ScannerError):
    """Options conflict; raised before any scanning starts."""
    pass


class ScanCancelledError(ScannerError):
    """The scan was stopped on request. Groups delivered before remain valid."""

    def __init__(self, message: str = "scan cancelled", **context) -> None:
        super().__init__(message, **context)


class TreeAccessError(ScannerError):
    """A tree could not be enumerated or read."""
    pass


class AssetReadError(ScannerError, FileProcessingError):
    """Stat or metadata extraction failed for one asset."""
    pass


class ManifestParseError(ScannerError, ParseError):
    """A file listing manifest could not be read."""
    pass


class ToolNotFoundError(ScannerError, _CommonToolNotFoundError):
    """Required external tool is not available."""
    pass


def classify_error(exception: Exception) -> str:
    """
    Classify an exception into an error category.

    Args:
        exception: The exception to classify

    Returns:
        Error category string: 'cancelled', 'configuration', 'tree', 'asset',
        'tool_missing', 'parse', 'permission', 'io', or 'unknown'
    """
    if isinstance(exception, ScanCancelledError):
        return 'cancelled'
    elif isinstance(exception, ConfigurationError):
        return 'configuration'
    elif isinstance(exception, TreeAccessError):
        return 'tree'
    elif isinstance(exception, AssetReadError):
        return 'asset'
    elif isinstance(exception, _CommonToolNotFoundError):
        return 'tool_missing'
    elif isinstance(exception, ParseError):
        return 'parse'
    elif isinstance(exception, PermissionError):
        return 'permission'
    elif isinstance(exception, OSError):
        return 'io'
    elif isinstance(exception, (ValueError, KeyError)):
        return 'parse'
    else:
        return 'unknown'
