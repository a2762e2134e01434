"""SQLite storage: opening, schema creation and the default records."""

from __future__ import annotations

import os
import sqlite3

from . import config

_PK = "INTEGER PRIMARY KEY AUTOINCREMENT"

_TABLES: dict[str, list[tuple[str, str]]] = {
    "settings": [("id", _PK), ("key", "TEXT"), ("value", "TEXT")],
    "tls": [("id", _PK), ("name", "TEXT"), ("server", "BLOB"), ("client", "BLOB")],
    "inbounds": [
        ("id", _PK), ("type", "TEXT"), ("tag", "TEXT UNIQUE"), ("tls_id", "INTEGER"),
        ("addrs", "BLOB"), ("out_json", "BLOB"), ("options", "BLOB"),
    ],
    "outbounds": [("id", _PK), ("type", "TEXT"), ("tag", "TEXT UNIQUE"), ("options", "BLOB")],
    "services": [
        ("id", _PK), ("type", "TEXT"), ("tag", "TEXT UNIQUE"), ("tls_id", "INTEGER"),
        ("options", "BLOB"),
    ],
    "endpoints": [
        ("id", _PK), ("type", "TEXT"), ("tag", "TEXT UNIQUE"), ("options", "BLOB"),
        ("ext", "BLOB"),
    ],
    "users": [
        ("id", _PK), ("username", "TEXT"), ("password", "TEXT"), ("last_logins", "TEXT"),
    ],
    "tokens": [
        ("id", _PK), ("desc", "TEXT"), ("token", "TEXT"), ("expiry", "INTEGER"),
        ("user_id", "INTEGER"),
    ],
    "stats": [
        ("id", _PK), ("date_time", "INTEGER"), ("resource", "TEXT"), ("tag", "TEXT"),
        ("direction", "NUMERIC"), ("traffic", "INTEGER"),
    ],
    "clients": [
        ("id", _PK), ("enable", "NUMERIC"), ("name", "TEXT"), ("config", "BLOB"),
        ("inbounds", "BLOB"), ("links", "BLOB"), ("volume", "INTEGER"),
        ("expiry", "INTEGER"), ("down", "INTEGER"), ("up", "INTEGER"),
        ("desc", "TEXT"), ("group", "TEXT"),
    ],
    "changes": [
        ("id", _PK), ("date_time", "INTEGER"), ("actor", "TEXT"), ("key", "TEXT"),
        ("action", "TEXT"), ("obj", "BLOB"),
    ],
    "telegram_bot_configs": [
        ("id", _PK), ("enabled", "NUMERIC"), ("bot_token", "TEXT"),
        ("webhook_domain", "TEXT"), ("webhook_secret", "TEXT"),
        ("yoo_kassa_shop_id", "TEXT"), ("yoo_kassa_secret_key", "TEXT"),
        ("success_redirect_url", "TEXT"), ("failure_redirect_url", "TEXT"),
        ("mini_app_url", "TEXT"), ("download_links", "TEXT"),
        ("updated_at", "DATETIME"), ("created_at", "DATETIME"),
    ],
    "telegram_tariffs": [
        ("id", _PK), ("title", "TEXT"), ("description", "TEXT"), ("price_minor", "INTEGER"),
        ("currency", "TEXT"), ("duration_days", "INTEGER"), ("sort_order", "INTEGER"),
        ("active", "NUMERIC"), ("created_at", "DATETIME"), ("updated_at", "DATETIME"),
    ],
    "telegram_tariff_buttons": [
        ("id", _PK), ("tariff_id", "INTEGER"), ("label", "TEXT"), ("action", "TEXT"),
        ("payload", "TEXT"), ("sort_order", "INTEGER"),
        ("created_at", "DATETIME"), ("updated_at", "DATETIME"),
    ],
    "telegram_user_profiles": [
        ("id", _PK), ("telegram_id", "INTEGER UNIQUE"), ("username", "TEXT"),
        ("first_name", "TEXT"), ("last_name", "TEXT"), ("language", "TEXT"),
        ("notes", "TEXT"), ("ever_paid", "NUMERIC"), ("active_subscription", "NUMERIC"),
        ("subscription_expires_at", "DATETIME"), ("last_tariff_id", "INTEGER"),
        ("last_interaction_at", "DATETIME"), ("created_at", "DATETIME"),
        ("updated_at", "DATETIME"),
    ],
    "telegram_user_messages": [
        ("id", _PK), ("user_id", "INTEGER"), ("direction", "TEXT"), ("body", "TEXT"),
        ("telegram_message_id", "TEXT"), ("seen", "NUMERIC"),
        ("created_at", "DATETIME"), ("updated_at", "DATETIME"),
    ],
    "telegram_broadcasts": [
        ("id", _PK), ("title", "TEXT"), ("body", "TEXT"), ("editable", "NUMERIC"),
        ("status", "TEXT"), ("audience", "TEXT"), ("sent_at", "DATETIME"),
        ("created_at", "DATETIME"), ("updated_at", "DATETIME"),
    ],
    "telegram_broadcast_deliveries": [
        ("id", _PK), ("broadcast_id", "INTEGER"), ("user_id", "INTEGER"),
        ("telegram_message_id", "TEXT"), ("status", "TEXT"), ("error_message", "TEXT"),
        ("sent_at", "DATETIME"), ("created_at", "DATETIME"), ("updated_at", "DATETIME"),
    ],
    "telegram_promo_codes": [
        ("id", _PK), ("code", "TEXT UNIQUE"), ("description", "TEXT"),
        ("discount_percent", "INTEGER"), ("free_days", "INTEGER"), ("max_uses", "INTEGER"),
        ("used_count", "INTEGER"), ("active", "NUMERIC"), ("expires_at", "DATETIME"),
        ("created_at", "DATETIME"), ("updated_at", "DATETIME"),
    ],
}

_db: sqlite3.Connection | None = None


class NotFoundError(LookupError):
    """A requested record does not exist."""


def _has_table(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    ).fetchone()
    return row is not None


def _columns(conn: sqlite3.Connection, name: str) -> list[str]:
    return [row[1] for row in conn.execute(f'PRAGMA table_info("{name}")')]


def _create_table(conn: sqlite3.Connection, name: str) -> None:
    """Create a table if missing, then add any columns it lacks."""
    spec = _TABLES[name]
    if not _has_table(conn, name):
        cols = ", ".join(f'"{col}" {decl}' for col, decl in spec)
        conn.execute(f'CREATE TABLE "{name}" ({cols})')
        return
    existing = set(_columns(conn, name))
    for col, decl in spec:
        if col not in existing:
            plain = decl.replace(" UNIQUE", "")
            conn.execute(f'ALTER TABLE "{name}" ADD COLUMN "{col}" {plain}')


def open_db(db_path: str) -> sqlite3.Connection:
    """Open the database file, creating its folder, and make it current."""
    global _db
    folder = os.path.dirname(db_path)
    if folder:
        os.makedirs(folder, mode=0o1740, exist_ok=True)
    close_db()
    conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if config.is_debug():
        conn.set_trace_callback(print)
    _db = conn
    return conn


def init_db(db_path: str) -> sqlite3.Connection:
    """Open the database, bring the schema up to date and seed defaults."""
    conn = open_db(db_path)
    if not _has_table(conn, "outbounds"):
        _create_table(conn, "outbounds")
        conn.execute(
            "INSERT INTO outbounds (type, tag, options) VALUES (?, ?, ?)",
            ("direct", "direct", "{}"),
        )
    for name in _TABLES:
        _create_table(conn, name)
    count = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
    if count == 0:
        conn.execute(
            "INSERT INTO users (username, password, last_logins) VALUES (?, ?, ?)",
            ("admin", "admin", ""),
        )
    return conn


def get_db() -> sqlite3.Connection:
    """Return the open connection."""
    if _db is None:
        raise RuntimeError("database is not open")
    return _db


def close_db() -> None:
    """Close the current connection, if any."""
    global _db
    if _db is not None:
        _db.close()
        _db = None


def is_not_found(err: BaseException | None) -> bool:
    """Return True when ``err`` reports a missing record."""
    return isinstance(err, NotFoundError)