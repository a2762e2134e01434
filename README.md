# suipanel

Building blocks for a proxy management panel backed by SQLite. It uses only the
standard library.

## Modules

- `suipanel.config`: runtime settings from the environment.
  - `is_debug()` is true when `SUI_DEBUG` is exactly `true`.
  - `get_log_level()` returns a `LogLevel`. Debug mode forces `debug`. Otherwise
    it reads `SUI_LOG_LEVEL`, which defaults to `info`; an unknown value raises
    `ValueError`.
  - `get_db_folder_path()` reads `SUI_DB_FOLDER`. Without it the folder is `db`
    next to the running script.
  - `get_db_path()` returns `<folder>/s-ui.db`.
  - `get_name()` and `get_version()` return the panel name and version.
- `suipanel.logger`: the `s-ui` logger. `init_logger(level)` sends output to
  syslog, or to stderr when syslog is not available. `debug`, `info`, `warning`
  and `error` log their arguments, and their `...f` variants take a format string
  first. Every message is also kept in a bounded `LogBuffer` of 10240 entries.
  `get_logs(count, level)` returns the buffered lines at or above `level`,
  newest first.
- `suipanel.models`: dataclasses for the stored records: `Setting`, `Tls`,
  `User`, `Client`, `Stats`, `Changes`, `Tokens`, and the Telegram bot records.
  - `Inbound`, `Outbound`, `Endpoint` and `Service` keep their fixed fields and
    put every other key into `options`. `from_json(data)` builds one from a dict,
    a str or bytes, and `to_json()` returns the configuration dict.
  - In `Endpoint.to_json()`, type `warp` is written out as `wireguard`.
  - `Inbound.marshal_full()` and `Service.marshal_full()` also include the id,
    the TLS id and, for inbounds, the addresses.
  - `TelegramBotConfig.get_download_links()` and `set_download_links(links)`
    store the download links as JSON.
- `suipanel.database`:
  - `init_db(path)` opens the SQLite file and makes it the current connection.
    It creates the folder if needed, creates or extends every table, and on a
    new database adds a `direct` outbound and a default administrator account.
  - `get_db()` returns the current connection, `close_db()` closes it, and
    `open_db(path)` only opens it.
  - `NotFoundError` and `is_not_found(err)` report missing records.
- `suipanel.migration`: `migrate_db(path)` upgrades a database written by an
  older release and records the current version. The steps are `to_1_1`,
  `to_1_2` and `to_1_3`, and each can also be called on its own connection.
  `to_1_2` moves a legacy `config.json` into the tables. It reads the file from
  `bin/` next to the running script, or from the folder named by
  `SUI_BIN_FOLDER`. A failed step rolls the transaction back and raises
  `MigrationError`.
- `suipanel.backup`:
  - `export_db(exclude)` returns a snapshot of the current database as SQLite
    file bytes. `exclude="stats,changes"` leaves those tables empty.
  - `import_db(file)` checks that an uploaded file is a SQLite database,
    replaces the database file with it, migrates and reopens it. It keeps the
    old file as a fallback until this has finished. It then returns a timer
    that sends this process `SIGHUP` after 3 seconds (`SIGTERM` where `SIGHUP`
    does not exist).
  - Failures raise `BackupError`. `is_sqlite_db(file)` and `send_sighup(delay)`
    can also be used alone.
- `suipanel.stats_tracker`: `StatsTracker` counts traffic per inbound, outbound
  and user. `routed_connection(conn, inbound, outbound, user)` wraps a
  socket-like object in a `CountedConnection`. `get_stats()` returns `Stats`
  rows for download (`direction=False`) and upload, and resets the counters.
- `suipanel.conn_tracker`: `ConnTracker` records wrapped connections until they
  close. `close_conn_by_inbound(inbound)` closes every connection of one inbound
  and returns how many were closed.
- `suipanel.autohttps`: `AutoHttpsListener` wraps a listening socket. When the
  first data on an accepted connection is a plain HTTP request, it answers with
  a `307` redirect to `https://` and closes the connection. Any other data is
  passed on unchanged. `redirect_response(data)` builds that reply.
- `suipanel.middleware`: `DomainValidator(app, domain)` is WSGI middleware that
  answers `403` when the request host, without its port, is not `domain`.
- `suipanel.webutil`: the `Msg` reply envelope, built by `json_msg`, `json_obj`,
  `json_msg_obj` and `pure_json_msg`. `get_remote_ip(headers, remote_addr)`
  prefers the first `X-Forwarded-For` entry, and `get_hostname(host)` strips the
  port.
- `suipanel.session`: `Session` stores the logged-in user and the cookie
  options. `set_login_user(name, max_age_minutes)`, `get_login_user()`,
  `is_login()` and `clear()` manage it.

## Example

```python
from suipanel import database, logger
from suipanel.stats_tracker import StatsTracker

database.init_db("/tmp/panel/s-ui.db")
logger.info("panel database ready")

tracker = StatsTracker()
reads, writes = tracker.get_counters("in-1", "direct", "alice")
for counter in reads:
    counter.add(1024)
for row in tracker.get_stats():
    print(row.resource, row.tag, row.direction, row.traffic)
```

## What it does not do

This package has no command-line program, no HTTP API server or web pages, no
subscription server and no Telegram bot. It does not run the proxy core itself.
It provides the storage, migration, tracking and request helpers that such a
program would be built on.

## Tests

```
pip install -e .[test]
pytest
```