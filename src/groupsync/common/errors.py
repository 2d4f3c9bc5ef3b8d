"""Base error definitions for groupsync packages."""

from typing import Any, Dict


class GroupSyncError(Exception):
    """Base exception for all groupsync errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value!r}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class FileProcessingError(GroupSyncError):
    """Base exception for errors tied to a single file."""
    pass


class ToolNotFoundError(FileProcessingError):
    """Required external tool is not available."""
    pass


class ParseError(FileProcessingError):
    """Error parsing file metadata or a listing."""
    pass
