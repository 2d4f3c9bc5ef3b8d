"""Configuration utilities."""

import tempfile
import platformdirs
from pathlib import Path

APP_NAME = "groupsync"


def expand_path_variables(path: str, app_name: str = APP_NAME) -> str:
    """Expand ${VAR} variables in paths.

    Supported variables:
        ${USER_HOME}: User's home directory
        ${USER_DATA}: User data directory
        ${USER_CONFIG}: User config directory
        ${USER_CACHE}: User cache directory
        ${USER_LOGS}: User log directory
        ${TEMP}: Temporary directory

    Args:
        path: Path string with variables
        app_name: Application name used for the per-app directories

    Returns:
        Expanded path string
    """
    if not isinstance(path, str):
        return path

    replacements = {
        "${USER_HOME}": str(Path.home()),
        "${USER_DATA}": platformdirs.user_data_dir(app_name, appauthor=False),
        "${USER_CONFIG}": platformdirs.user_config_dir(app_name, appauthor=False),
        "${USER_CACHE}": platformdirs.user_cache_dir(app_name, appauthor=False),
        "${USER_LOGS}": platformdirs.user_log_dir(app_name, appauthor=False),
        "${TEMP}": tempfile.gettempdir(),
    }

    for var, value in replacements.items():
        path = path.replace(var, value)

    return path
