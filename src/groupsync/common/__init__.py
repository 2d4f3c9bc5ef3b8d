"""Common utilities for groupsync packages."""

from .config import ConfigLoader
from .config_utils import expand_path_variables
from .logging import setup_logging, get_logger, LogContext
from .logging_config import LoggingConfig
from .errors import (
    GroupSyncError, FileProcessingError, ToolNotFoundError, ParseError
)
from .path_utils import normalize_path, clean_tree_path, split_dir_base, ext_of, strip_ext

__all__ = [
    'ConfigLoader',
    'expand_path_variables',
    'LoggingConfig',
    'setup_logging',
    'get_logger',
    'LogContext',
    'GroupSyncError',
    'FileProcessingError',
    'ToolNotFoundError',
    'ParseError',
    'normalize_path',
    'clean_tree_path',
    'split_dir_base',
    'ext_of',
    'strip_ext',
]
