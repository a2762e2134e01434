"""Redirect plain HTTP requests arriving on a TLS port to HTTPS."""

from __future__ import annotations

import re
import string
import threading
from typing import Any
from urllib.parse import urlsplit

_FIRST_READ = 2048
_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")
_PROTO = re.compile(r"HTTP/\d\.\d\Z")


def _parse_request(data: bytes) -> tuple[str, str] | None:
    text = data.decode("latin-1").replace("\r\n", "\n")
    head, sep, _ = text.partition("\n\n")
    if not sep:
        return None
    request_line, *header_lines = head.split("\n")
    parts = request_line.split(" ", 2)
    if len(parts) != 3:
        return None
    method, uri, proto = parts
    if not method or not set(method) <= _TOKEN_CHARS or not _PROTO.match(proto):
        return None
    if not (uri.startswith("/") or uri == "*" or "://" in uri):
        return None
    host_header = ""
    for line in header_lines:
        name, colon, value = line.partition(":")
        if not colon or not name or name != name.strip():
            return None
        if name.lower() == "host" and not host_header:
            host_header = value.strip()
    host = urlsplit(uri).netloc if "://" in uri else ""
    return (host or host_header), uri


def redirect_response(data: bytes) -> bytes | None:
    """Return a redirect to HTTPS if ``data`` is an HTTP request, else None."""
    parsed = _parse_request(data)
    if parsed is None:
        return None
    host, uri = parsed
    return (
        "HTTP/1.1 307 Temporary Redirect\r\n"
        f"Location: https://{host}{uri}\r\n"
        "Content-Length: 0\r\n"
        "Connection: close\r\n"
        "\r\n"
    ).encode("latin-1")


class AutoHttpsConnection:
    """Answers a plain HTTP first request with a redirect; passes other data on."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn
        self._lock = threading.Lock()
        self._checked = False
        self._redirected = False
        self._pending = b""

    def _check_first(self) -> None:
        if self._checked:
            return
        self._checked = True
        data = self._conn.recv(_FIRST_READ)
        response = redirect_response(data) if data else None
        if response is None:
            self._pending = data
            return
        try:
            self._conn.sendall(response)
        except OSError:
            pass
        self._redirected = True
        self.close()

    def recv(self, size: int) -> bytes:
        with self._lock:
            self._check_first()
            if self._redirected:
                raise ConnectionAbortedError("plain HTTP request redirected to HTTPS")
            if self._pending:
                chunk, self._pending = self._pending[:size], self._pending[size:]
                return chunk
        return self._conn.recv(size)

    def close(self) -> None:
        self._conn.close()

    def __getattr__(self, name: str) -> Any:
        conn = self.__dict__.get("_conn")
        if conn is None:
            raise AttributeError(name)
        return getattr(conn, name)

    def __enter__(self) -> AutoHttpsConnection:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class AutoHttpsListener:
    """Wraps a listening socket so accepted connections redirect plain HTTP."""

    def __init__(self, listener: Any) -> None:
        self._listener = listener

    def accept(self) -> tuple[AutoHttpsConnection, Any]:
        conn, addr = self._listener.accept()
        return AutoHttpsConnection(conn), addr

    def __getattr__(self, name: str) -> Any:
        listener = self.__dict__.get("_listener")
        if listener is None:
            raise AttributeError(name)
        return getattr(listener, name)

    def __enter__(self) -> AutoHttpsListener:
        return self

    def __exit__(self, *exc: object) -> None:
        self._listener.close()