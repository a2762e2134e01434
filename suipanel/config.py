"""Runtime configuration read from the environment."""

from __future__ import annotations

import enum
import os
import sys

_NAME = "s-ui"
_VERSION = "1.3.0"

_FALLBACK_DB_FOLDER_WINDOWS = "C:\\Program Files\\s-ui\\db"
_FALLBACK_DB_FOLDER = "/usr/local/s-ui/db"


class LogLevel(str, enum.Enum):
    """Log levels accepted in ``SUI_LOG_LEVEL``."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


def get_version() -> str:
    """Return the panel version."""
    return _VERSION.strip()


def get_name() -> str:
    """Return the panel name, also used as the database file stem."""
    return _NAME.strip()


def is_debug() -> bool:
    """Return True when ``SUI_DEBUG`` is exactly ``true``."""
    return os.environ.get("SUI_DEBUG") == "true"


def get_log_level() -> LogLevel:
    """Return the configured log level; debug mode forces ``debug``."""
    if is_debug():
        return LogLevel.DEBUG
    value = os.environ.get("SUI_LOG_LEVEL", "")
    if not value:
        return LogLevel.INFO
    try:
        return LogLevel(value)
    except ValueError:
        raise ValueError(f"unknown log level: {value}") from None


def get_db_folder_path() -> str:
    """Return the folder holding the database file."""
    folder = os.environ.get("SUI_DB_FOLDER", "")
    if folder:
        return folder
    try:
        base = os.path.abspath(os.path.dirname(sys.argv[0]))
    except (IndexError, OSError, ValueError):
        if os.name == "nt":
            return _FALLBACK_DB_FOLDER_WINDOWS
        return _FALLBACK_DB_FOLDER
    return os.path.join(base, "db")


def get_db_path() -> str:
    """Return the full path of the database file."""
    return f"{get_db_folder_path()}/{get_name()}.db"