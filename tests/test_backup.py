import io
import os
import signal
import sqlite3
from unittest import mock

import pytest

from suipanel import config, database
from suipanel.backup import BackupError, export_db, import_db, is_sqlite_db, send_sighup


@pytest.fixture
def live_db(tmp_path, monkeypatch):
    monkeypatch.setenv("SUI_DB_FOLDER", str(tmp_path / "db"))
    monkeypatch.delenv("SUI_DEBUG", raising=False)
    conn = database.init_db(config.get_db_path())
    conn.execute(
        "INSERT INTO settings (key, value) VALUES (?, ?)", ("version", config.get_version())
    )
    conn.execute(
        "INSERT INTO stats (date_time, resource, tag, direction, traffic) "
        "VALUES (1, 'inbound', 'in-1', 0, 10)"
    )
    conn.execute(
        "INSERT INTO changes (date_time, actor, key, action, obj) "
        "VALUES (1, 'admin', 'inbounds', 'new', '\"x\"')"
    )
    yield conn
    database.close_db()


def _open_blob(tmp_path, blob):
    path = tmp_path / "exported.db"
    path.write_bytes(blob)
    return sqlite3.connect(str(path))


def _count(conn, table):
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def test_is_sqlite_db_accepts_signature():
    assert is_sqlite_db(io.BytesIO(b"SQLite format 3\x00rest of file")) is True


def test_is_sqlite_db_rejects_other_data():
    assert is_sqlite_db(io.BytesIO(b"not a database file at all")) is False
    assert is_sqlite_db(io.BytesIO(b"")) is False


def test_export_contains_all_tables(live_db, tmp_path):
    blob = export_db("")
    assert blob.startswith(b"SQLite format 3\x00")
    copy = _open_blob(tmp_path, blob)
    try:
        assert copy.execute("SELECT username FROM users").fetchall() == [("admin",)]
        assert _count(copy, "stats") == 1
        assert _count(copy, "changes") == 1
        assert copy.execute("SELECT tag FROM outbounds").fetchall() == [("direct",)]
    finally:
        copy.close()


def test_export_excludes_stats_and_changes(live_db, tmp_path):
    copy = _open_blob(tmp_path, export_db("stats,changes"))
    try:
        assert _count(copy, "stats") == 0
        assert _count(copy, "changes") == 0
        assert _count(copy, "users") == 1
    finally:
        copy.close()


def test_import_round_trip(live_db):
    blob = export_db("")
    live_db.execute("DELETE FROM stats")
    timer = import_db(io.BytesIO(blob))
    timer.cancel()
    restored = database.get_db()
    assert _count(restored, "stats") == 1
    db_path = config.get_db_path()
    assert not os.path.exists(db_path + ".backup")
    assert not os.path.exists(db_path + ".temp")


def test_import_rejects_invalid_file(live_db):
    with pytest.raises(BackupError):
        import_db(io.BytesIO(b"this is not a sqlite database"))
    assert database.get_db() is live_db


def test_send_sighup_signals_own_process():
    expected = getattr(signal, "SIGHUP", signal.SIGTERM)
    with mock.patch("os.kill") as kill:
        timer = send_sighup(0)
        timer.join(5)
        assert timer.is_alive() is False
    assert kill.call_count == 1
    assert kill.call_args == mock.call(os.getpid(), expected)