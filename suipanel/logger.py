"""Panel logging with an in-memory buffer of recent entries."""

from __future__ import annotations

import enum
import logging
import logging.handlers
import sys
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any

_MAX_ENTRIES = 10240
_TIME_FORMAT = "%Y/%m/%d %H:%M:%S"


class _Level(enum.IntEnum):
    CRITICAL = 0
    ERROR = 1
    WARNING = 2
    NOTICE = 3
    INFO = 4
    DEBUG = 5


def _parse_level(name: str) -> _Level:
    for level in _Level:
        if level.name.lower() == str(name).lower():
            return level
    return _Level.ERROR


@dataclass(frozen=True)
class _Entry:
    time: str
    level: _Level
    message: str


class LogBuffer:
    """Bounded buffer of the most recent log entries."""

    def __init__(self, max_entries: int = _MAX_ENTRIES) -> None:
        self._entries: deque[_Entry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def add(self, level: str, message: str) -> None:
        """Record a message under a level name such as ``INFO``."""
        entry = _Entry(datetime.now().strftime(_TIME_FORMAT), _parse_level(level), message)
        with self._lock:
            self._entries.append(entry)

    def get_logs(self, count: int, level: str) -> list[str]:
        """Return newest entries at or above ``level``, newest first.

        Collection stops once more than ``count`` lines are gathered.
        An unknown level name is treated as ``error``.
        """
        threshold = _parse_level(level)
        output: list[str] = []
        with self._lock:
            for entry in reversed(self._entries):
                if len(output) > count:
                    break
                if entry.level <= threshold:
                    output.append(f"{entry.time} {entry.level.name} - {entry.message}")
        return output


_buffer = LogBuffer()
_logger = logging.getLogger("s-ui")

_PY_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _to_python_level(level: Any) -> int:
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    name = getattr(level, "value", level)
    try:
        return _PY_LEVELS[str(name).lower()]
    except KeyError:
        raise ValueError(f"unknown log level: {name}") from None


def init_logger(level: Any) -> logging.Logger:
    """Configure the panel logger, preferring syslog over stderr."""
    py_level = _to_python_level(level)
    try:
        handler: logging.Handler = logging.handlers.SysLogHandler(address="/dev/log")
        formatter = logging.Formatter("%(levelname)s - %(message)s")
    except OSError as exc:
        print(f"Unable to use syslog: {exc}")
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s - %(message)s", datefmt=_TIME_FORMAT
        )
    handler.setFormatter(formatter)
    for old in list(_logger.handlers):
        _logger.removeHandler(old)
        old.close()
    _logger.addHandler(handler)
    _logger.setLevel(py_level)
    _logger.propagate = False
    return _logger


def get_logger() -> logging.Logger:
    """Return the panel logger."""
    return _logger


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    return str(value)


def _sprint(args: tuple[Any, ...]) -> str:
    parts: list[str] = []
    previous_is_str = True
    for index, arg in enumerate(args):
        is_str = isinstance(arg, str)
        if index > 0 and not is_str and not previous_is_str:
            parts.append(" ")
        parts.append(_format_value(arg))
        previous_is_str = is_str
    return "".join(parts)


def _sprintf(fmt: str, args: tuple[Any, ...]) -> str:
    pattern = fmt.replace("%v", "%s")
    try:
        return pattern % tuple(args)
    except (TypeError, ValueError):
        return fmt + _sprint(args)


def _emit(py_level: int, name: str, message: str) -> None:
    _logger.log(py_level, message)
    _buffer.add(name, message)


def debug(*args: Any) -> None:
    _emit(logging.DEBUG, "DEBUG", _sprint(args))


def debugf(fmt: str, *args: Any) -> None:
    _emit(logging.DEBUG, "DEBUG", _sprintf(fmt, args))


def info(*args: Any) -> None:
    _emit(logging.INFO, "INFO", _sprint(args))


def infof(fmt: str, *args: Any) -> None:
    _emit(logging.INFO, "INFO", _sprintf(fmt, args))


def warning(*args: Any) -> None:
    _emit(logging.WARNING, "WARNING", _sprint(args))


def warningf(fmt: str, *args: Any) -> None:
    _emit(logging.WARNING, "WARNING", _sprintf(fmt, args))


def error(*args: Any) -> None:
    _emit(logging.ERROR, "ERROR", _sprint(args))


def errorf(fmt: str, *args: Any) -> None:
    _emit(logging.ERROR, "ERROR", _sprintf(fmt, args))


def get_logs(count: int, level: str) -> list[str]:
    """Return recent buffered log lines; see ``LogBuffer.get_logs``."""
    return _buffer.get_logs(count, level)