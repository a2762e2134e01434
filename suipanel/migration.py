"""Upgrades of databases written by older panel versions."""

from __future__ import annotations

import json
import os
import sqlite3
import sys
from typing import Any
from urllib.parse import urlsplit

from . import config
from .database import NotFoundError, _create_table, _columns, _has_table
from .models import Endpoint, Inbound, Outbound


class MigrationError(RuntimeError):
    """A migration step failed."""


def _dump_indent(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)


def _dump(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _load(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if value is None:
        raise ValueError("empty JSON value")
    return json.loads(value)


def migrate_client_schema(conn: sqlite3.Connection) -> None:
    """Convert text columns of clients into JSON documents."""
    for row in list(conn.execute("PRAGMA table_info(clients)")):
        name, ctype = row[1], row[2]
        if name not in ("config", "inbounds", "links") or ctype != "text":
            continue
        print(f"Column {name} has type TEXT")
        old = list(conn.execute(f'SELECT id, "{name}" FROM clients'))
        for client_id, data in old:
            data = data if isinstance(data, str) else (data or b"").decode("utf-8", "replace")
            if name == "inbounds":
                new: Any = data.split(",")
            else:
                default: Any = {} if name == "config" else []
                try:
                    new = json.loads(data)
                except ValueError:
                    new = default
                if not isinstance(new, type(default)):
                    new = default
            conn.execute(
                f'UPDATE clients SET "{name}" = ? WHERE id = ?',
                (_dump_indent(new).encode("utf-8"), client_id),
            )


def delete_old_web_secret(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM settings WHERE key = ?", ("webSecret",))


def changes_obj(conn: sqlite3.Connection) -> None:
    """Quote bare objects of changes recorded by the deplete job."""
    conn.execute(
        "UPDATE changes SET obj = CAST('\"' || CAST(obj AS TEXT) || '\"' AS BLOB) "
        "WHERE actor = ? and obj not like ?",
        ("DepleteJob", '"%"'),
    )


def to_1_1(conn: sqlite3.Connection) -> None:
    migrate_client_schema(conn)
    delete_old_web_secret(conn)
    changes_obj(conn)


def _legacy_config_path() -> str:
    folder = os.environ.get("SUI_BIN_FOLDER") or "bin"
    base = os.path.abspath(os.path.dirname(sys.argv[0]))
    return f"{base}/{folder}/config.json"


def _insert_inbound(conn: sqlite3.Connection, inbound: Inbound) -> None:
    conn.execute(
        "INSERT INTO inbounds (id, type, tag, tls_id, addrs, out_json, options) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        (
            inbound.id or None, inbound.type, inbound.tag, inbound.tls_id,
            _dump_indent(inbound.addrs), _dump_indent(inbound.out_json),
            _dump_indent(inbound.options),
        ),
    )


def _convert_addrs(addrs: Any) -> Any:
    if not isinstance(addrs, list):
        return addrs
    for addr in addrs:
        if isinstance(addr, dict) and isinstance(addr.get("tls"), bool):
            new_tls: dict[str, Any] = {"enabled": addr["tls"]}
            if isinstance(addr.get("insecure"), bool):
                new_tls["insecure"] = addr.pop("insecure")
            if isinstance(addr.get("server_name"), str):
                new_tls["server_name"] = addr.pop("server_name")
            addr["tls"] = new_tls
    return addrs


def _migrate_inbound(conn: sqlite3.Connection, obj: dict[str, Any]) -> None:
    tag = obj.get("tag") if isinstance(obj.get("tag"), str) else ""
    if "tls" in obj:
        row = conn.execute(
            "SELECT id FROM tls WHERE inbounds like ?", (f'%"{tag}"%',)
        ).fetchone()
        tls_id = row[0] if row else 0
        if tls_id > 0:
            obj["tls_id"] = tls_id
        else:
            server = _dump_indent(obj["tls"])
            if len(server) > 5:
                cur = conn.execute(
                    "INSERT INTO tls (name, server, client) VALUES (?, ?, ?)",
                    (tag, server, "{}"),
                )
                obj["tls_id"] = cur.lastrowid
    try:
        data = conn.execute(
            "select id, addrs, out_json from inbound_data where tag = ?", (tag,)
        ).fetchone()
    except sqlite3.Error:
        data = None
    if data is not None and data[0] > 0:
        try:
            obj["out_json"] = _load(data[2])
        except ValueError:
            obj["out_json"] = None
        try:
            addrs = _load(data[1])
        except ValueError:
            addrs = None
        obj["addrs"] = _convert_addrs(addrs)
    else:
        obj["out_json"] = {}
        obj["addrs"] = []
    for key in ("sniff", "sniff_override_destination", "sniff_timeout", "domain_strategy"):
        obj.pop(key, None)
    _insert_inbound(conn, Inbound.from_json(obj))


def _rewrite_rules(route: dict[str, Any], block_tags: list[str], dns_tags: list[str]) -> None:
    rules = route.get("rules")
    if not isinstance(rules, list):
        return
    has_dns = False
    for rule in rules:
        if not isinstance(rule, dict):
            continue
        target = rule.get("outbound")
        if target in block_tags:
            del rule["outbound"]
            rule["action"] = "reject"
        elif target in dns_tags:
            has_dns = True
            del rule["outbound"]
            rule["action"] = "hijack-dns"
        else:
            rule["action"] = "route"
    if has_dns:
        rules.append({"action": "sniff"})


def move_json_to_db(conn: sqlite3.Connection, config_path: str | None = None) -> None:
    """Move a legacy ``config.json`` into the database tables."""
    path = config_path or _legacy_config_path()
    if not os.path.exists(path):
        return
    with open(path, encoding="utf-8") as handle:
        old_config = json.load(handle)

    conn.execute("DROP TABLE IF EXISTS inbounds")
    _create_table(conn, "inbounds")
    for inbound in old_config.get("inbounds") or []:
        if isinstance(inbound, dict):
            _migrate_inbound(conn, inbound)
    old_config.pop("inbounds", None)

    block_tags: list[str] = []
    dns_tags: list[str] = []
    conn.execute("DROP TABLE IF EXISTS outbounds")
    conn.execute("DROP TABLE IF EXISTS endpoints")
    _create_table(conn, "outbounds")
    _create_table(conn, "endpoints")
    for item in old_config.get("outbounds") or []:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "wireguard":
            endpoint = Endpoint.from_json(item)
            conn.execute(
                "INSERT INTO endpoints (id, type, tag, options, ext) VALUES (?, ?, ?, ?, ?)",
                (endpoint.id or None, endpoint.type, endpoint.tag,
                 _dump_indent(endpoint.options), _dump_indent(endpoint.ext)),
            )
            continue
        outbound = Outbound.from_json(item)
        if outbound.type == "direct" and outbound.options is not None:
            outbound.options.pop("override_address", None)
            outbound.options.pop("override_port", None)
        if outbound.type == "dns":
            dns_tags.append(outbound.tag)
        elif outbound.type == "block":
            block_tags.append(outbound.tag)
        else:
            conn.execute(
                "INSERT INTO outbounds (id, type, tag, options) VALUES (?, ?, ?, ?)",
                (outbound.id or None, outbound.type, outbound.tag,
                 _dump_indent(outbound.options)),
            )
    old_config.pop("outbounds", None)

    route = old_config.get("route")
    if isinstance(route, dict):
        _rewrite_rules(route, block_tags, dns_tags)

    experimental = old_config.get("experimental")
    if isinstance(experimental, dict):
        experimental.pop("v2ray_api", None)
        experimental.pop("clash_api", None)

    conn.execute(
        "INSERT INTO settings (key, value) VALUES (?, ?)",
        ("config", _dump_indent(old_config)),
    )


def migrate_tls(conn: sqlite3.Connection) -> None:
    """Drop the legacy inbound list of TLS records and trim client options."""
    if "inbounds" not in _columns(conn, "tls"):
        return
    conn.execute('ALTER TABLE tls DROP COLUMN "inbounds"')
    allowed = {"insecure", "disable_sni", "utls", "ech", "reality"}
    for tls_id, client in list(conn.execute("SELECT id, client FROM tls")):
        try:
            parsed = _load(client)
        except ValueError:
            continue
        if not isinstance(parsed, dict):
            continue
        trimmed = {k: v for k, v in parsed.items() if k in allowed}
        conn.execute("UPDATE tls SET client = ? WHERE id = ?", (_dump_indent(trimmed), tls_id))


def drop_inbound_data(conn: sqlite3.Connection) -> None:
    if _has_table(conn, "inbound_data"):
        conn.execute("DROP TABLE inbound_data")


def migrate_clients(conn: sqlite3.Connection) -> None:
    """Replace inbound tags in clients with inbound ids."""
    for client_id, inbounds in list(conn.execute("SELECT id, inbounds FROM clients")):
        try:
            tags = _load(inbounds)
        except ValueError as exc:
            raise MigrationError(f"client {client_id}: {exc}") from exc
        tags = tags or []
        ids: list[int] = []
        if tags:
            marks = ", ".join("?" for _ in tags)
            ids = [r[0] for r in conn.execute(
                f"SELECT id FROM inbounds WHERE tag in ({marks})", tuple(tags))]
        conn.execute("UPDATE clients SET inbounds = ? WHERE id = ?", (_dump(ids), client_id))


def migrate_changes(conn: sqlite3.Connection) -> None:
    if "index" in _columns(conn, "changes"):
        conn.execute('ALTER TABLE changes DROP COLUMN "index"')


def to_1_2(conn: sqlite3.Connection, config_path: str | None = None) -> None:
    move_json_to_db(conn, config_path)
    migrate_tls(conn)
    drop_inbound_data(conn)
    migrate_clients(conn)
    migrate_changes(conn)


def _port_of(netloc: str) -> int | None:
    host, sep, port = netloc.rpartition(":")
    if sep and port.isdigit() and not host.endswith(":"):
        return int(port)
    return None


def _convert_dns_server(server: dict[str, Any]) -> None:
    addr = server.get("address")
    if not isinstance(addr, str) or not addr:
        return
    if addr in ("local", "fakeip"):
        del server["address"]
        server["type"] = addr
        return
    head = addr.split("/", 1)[0]
    if "://" not in addr and ":" in head:
        return
    try:
        parsed = urlsplit(addr)
    except ValueError:
        return
    scheme, host = parsed.scheme, parsed.netloc
    if scheme == "":
        server["type"] = "udp"
        server["server"] = addr
    elif scheme in ("udp", "tcp", "tls", "quic", "https", "h3"):
        server["type"] = scheme
        server["server"] = host
    elif scheme == "dhcp":
        server["type"] = scheme
        if host not in ("auto", ""):
            server["interface"] = host
    elif scheme == "rcode":
        server["type"] = "predefined"
        server["responses"] = [{"rcode": host.upper()}]
    del server["address"]
    port = _port_of(host)
    if port is not None:
        server["server_port"] = port
    resolver = server.get("address_resolver")
    if isinstance(resolver, str) and resolver:
        del server["address_resolver"]
        server["domain_resolver"] = resolver
    server.pop("strategy", None)


def migrate_dns(conn: sqlite3.Connection) -> None:
    """Rewrite DNS servers from address URLs to typed server objects."""
    row = conn.execute("SELECT value FROM settings WHERE key = ?", ("config",)).fetchone()
    if row is None:
        raise NotFoundError("config setting not found")
    if not row[0]:
        return
    cfg = json.loads(row[0])
    dns = cfg.get("dns") if isinstance(cfg, dict) else None
    if not isinstance(dns, dict):
        return
    servers = dns.get("servers")
    if isinstance(servers, list):
        for server in servers:
            if isinstance(server, dict):
                _convert_dns_server(server)
    conn.execute("UPDATE settings SET value = ? WHERE key = ?", (_dump_indent(cfg), "config"))


def remove_outbound_strategy(conn: sqlite3.Connection) -> None:
    for out_id, options in list(conn.execute("SELECT id, options FROM outbounds")):
        fields = _load(options)
        if not isinstance(fields, dict):
            raise MigrationError(f"outbound {out_id}: options must be an object")
        fields.pop("domain_strategy", None)
        conn.execute("UPDATE outbounds SET options = ? WHERE id = ?", (_dump_indent(fields), out_id))


def anytls_user_config(conn: sqlite3.Connection) -> None:
    """Give each client an anytls config copied from its trojan config."""
    for client_id, cfg in list(conn.execute("SELECT id, config FROM clients")):
        try:
            configs = _load(cfg)
        except (ValueError, TypeError) as exc:
            raise MigrationError(f"client {client_id}: {exc}") from exc
        if not isinstance(configs, dict):
            raise MigrationError(f"client {client_id}: config must be an object")
        if "anytls" in configs:
            continue
        configs["anytls"] = configs.get("trojan")
        conn.execute("UPDATE clients SET config = ? WHERE id = ?", (_dump_indent(configs), client_id))


def to_1_3(conn: sqlite3.Connection) -> None:
    anytls_user_config(conn)
    migrate_dns(conn)
    remove_outbound_strategy(conn)


def migrate_db(db_path: str | None = None) -> None:
    """Bring the database at ``db_path`` up to the current version."""
    path = db_path or config.get_db_path()
    if not os.path.exists(path):
        print("Database not found")
        return
    conn = sqlite3.connect(path, isolation_level=None)
    try:
        current = config.get_version()
        try:
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?", ("version",)
            ).fetchone()
        except sqlite3.Error:
            row = None
        db_version = row[0] if row and row[0] else ""
        print("Current version:", current, "\nDatabase version:", db_version)
        if current == db_version:
            print("Database is up to date, no need to migrate")
            return
        print("Start migrating database...")
        conn.execute("BEGIN")
        step = ""
        try:
            if db_version == "":
                step = "Migration to 1.1 failed"
                to_1_1(conn)
                step = "Migration to 1.2 failed"
                to_1_2(conn)
                db_version = "1.2"
            if db_version.startswith("1.2"):
                step = "Migration to 1.3 failed"
                to_1_3(conn)
            step = "Update version failed"
            conn.execute("UPDATE settings SET value = ? WHERE key = ?", (current, "version"))
        except Exception as exc:
            conn.execute("ROLLBACK")
            raise MigrationError(f"{step}: {exc}") from exc
        conn.execute("COMMIT")
        print("Migration done!")
    finally:
        conn.close()