"""Export and import of the whole panel database."""

from __future__ import annotations

import os
import shutil
import signal
import sqlite3
import tempfile
import threading
from typing import BinaryIO

from . import config, database, logger, migration
from .database import _columns, _create_table, _has_table

SQLITE_SIGNATURE = b"SQLite format 3\x00"

_BACKUP_TABLES = (
    "settings",
    "tls",
    "inbounds",
    "outbounds",
    "endpoints",
    "users",
    "stats",
    "clients",
    "changes",
)
_OPTIONAL_TABLES = ("stats", "changes")
_RESTART_DELAY = 3.0


class BackupError(RuntimeError):
    """Exporting or importing the database failed."""


def _copy_rows(source: sqlite3.Connection, target: sqlite3.Connection, table: str) -> None:
    source_cols = set(_columns(source, table))
    cols = [col for col in _columns(target, table) if col in source_cols]
    if not cols:
        return
    names = ", ".join(f'"{col}"' for col in cols)
    marks = ", ".join("?" for _ in cols)
    rows = [tuple(row) for row in source.execute(f'SELECT {names} FROM "{table}"')]
    if rows:
        target.executemany(f'INSERT OR REPLACE INTO "{table}" ({names}) VALUES ({marks})', rows)


def export_db(exclude: str = "") -> bytes:
    """Return a copy of the database as SQLite file bytes.

    ``exclude`` is a comma separated list; ``stats`` and ``changes``
    leave those tables empty in the copy.
    """
    excluded = {name for name in exclude.split(",") if name in _OPTIONAL_TABLES}
    source = database.get_db()
    fd, path = tempfile.mkstemp(prefix=f"{config.get_name()}_", suffix=".db")
    os.close(fd)
    try:
        backup = sqlite3.connect(path, isolation_level=None)
        try:
            for table in _BACKUP_TABLES:
                _create_table(backup, table)
            backup.execute("BEGIN")
            for table in _BACKUP_TABLES:
                if table in excluded or not _has_table(source, table):
                    continue
                _copy_rows(source, backup, table)
            backup.execute("COMMIT")
            backup.execute("PRAGMA wal_checkpoint;")
        except sqlite3.Error as exc:
            raise BackupError(f"Error exporting db: {exc}") from exc
        finally:
            backup.close()
        with open(path, "rb") as handle:
            return handle.read()
    finally:
        os.remove(path)


def is_sqlite_db(file: BinaryIO) -> bool:
    """Return True when ``file`` starts with the SQLite signature."""
    head = file.read(len(SQLITE_SIGNATURE))
    return head == SQLITE_SIGNATURE


def _remove_if_exists(path: str, what: str) -> None:
    if os.path.exists(path):
        try:
            os.remove(path)
        except OSError as exc:
            raise BackupError(f"Error removing existing {what} db file: {exc}") from exc


def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def import_db(file: BinaryIO) -> threading.Timer:
    """Replace the database with the uploaded one and schedule a restart.

    Returns the pending restart timer.
    """
    try:
        valid = is_sqlite_db(file)
    except OSError as exc:
        raise BackupError(f"Error checking db file format: {exc}") from exc
    if not valid:
        raise BackupError("Invalid db file format")
    try:
        file.seek(0)
    except OSError as exc:
        raise BackupError(f"Error resetting file reader: {exc}") from exc

    db_path = config.get_db_path()
    temp_path = f"{db_path}.temp"
    fallback_path = f"{db_path}.backup"
    _remove_if_exists(temp_path, "temporary")
    try:
        try:
            with open(temp_path, "wb") as temp_file:
                database.close_db()
                shutil.copyfileobj(file, temp_file)
        except OSError as exc:
            raise BackupError(f"Error saving db: {exc}") from exc

        try:
            check = sqlite3.connect(temp_path)
            try:
                check.execute("PRAGMA schema_version").fetchone()
            finally:
                check.close()
        except sqlite3.Error as exc:
            raise BackupError(f"Error checking db: {exc}") from exc

        _remove_if_exists(fallback_path, "fallback")
        try:
            os.replace(db_path, fallback_path)
        except OSError as exc:
            raise BackupError(f"Error backing up temporary db file: {exc}") from exc
        try:
            try:
                os.replace(temp_path, db_path)
            except OSError as exc:
                try:
                    os.replace(fallback_path, db_path)
                except OSError as restore_exc:
                    raise BackupError(
                        f"Error moving db file and restoring fallback: {restore_exc}"
                    ) from restore_exc
                raise BackupError(f"Error moving db file: {exc}") from exc

            try:
                migration.migrate_db(db_path)
                database.init_db(db_path)
            except (migration.MigrationError, sqlite3.Error, OSError) as exc:
                database.close_db()
                try:
                    os.replace(fallback_path, db_path)
                except OSError as restore_exc:
                    raise BackupError(
                        f"Error migrating db and restoring fallback: {restore_exc}"
                    ) from restore_exc
                raise BackupError(f"Error migrating db: {exc}") from exc
        finally:
            _discard(fallback_path)
    finally:
        _discard(temp_path)

    return send_sighup(_RESTART_DELAY)


def _restart_signal() -> int:
    return getattr(signal, "SIGHUP", signal.SIGTERM)


def send_sighup(delay: float = _RESTART_DELAY) -> threading.Timer:
    """Signal this process to restart after ``delay`` seconds."""

    def fire() -> None:
        try:
            os.kill(os.getpid(), _restart_signal())
        except OSError as exc:
            logger.error("send signal SIGHUP failed:", exc)

    timer = threading.Timer(delay, fire)
    timer.daemon = True
    timer.start()
    return timer