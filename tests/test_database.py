import pytest

from suipanel import database


@pytest.fixture
def db(tmp_path):
    conn = database.init_db(str(tmp_path / "sub" / "s-ui.db"))
    yield conn
    database.close_db()


def test_init_creates_admin(db):
    rows = list(db.execute("SELECT username, password FROM users"))
    assert [tuple(r) for r in rows] == [("admin", "admin")]


def test_default_direct_outbound(db):
    rows = list(db.execute("SELECT type, tag, options FROM outbounds"))
    assert [tuple(r) for r in rows] == [("direct", "direct", "{}")]


def test_init_is_idempotent(tmp_path):
    path = str(tmp_path / "x.db")
    database.init_db(path)
    conn = database.init_db(path)
    try:
        assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 1
        assert conn.execute("SELECT COUNT(*) FROM outbounds").fetchone()[0] == 1
    finally:
        database.close_db()


def test_get_db_returns_current(db):
    assert database.get_db() is db


def test_get_db_after_close_raises(tmp_path):
    database.init_db(str(tmp_path / "y.db"))
    database.close_db()
    with pytest.raises(RuntimeError):
        database.get_db()


def test_missing_columns_are_added(tmp_path):
    path = str(tmp_path / "z.db")
    conn = database.open_db(path)
    conn.execute("CREATE TABLE clients (id INTEGER PRIMARY KEY, name TEXT)")
    conn = database.init_db(path)
    try:
        cols = [r[1] for r in conn.execute("PRAGMA table_info(clients)")]
        assert "group" in cols and "inbounds" in cols
    finally:
        database.close_db()


def test_is_not_found():
    assert database.is_not_found(database.NotFoundError("x"))
    assert not database.is_not_found(ValueError("x"))
    assert not database.is_not_found(None)