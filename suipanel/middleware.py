"""WSGI middleware that only serves requests for one host name."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from .webutil import _split_host_port


def host_matches(host: str, domain: str) -> bool:
    """Return True when ``host``, without its port, equals ``domain``."""
    if ":" in host:
        try:
            host, _ = _split_host_port(host)
        except ValueError:
            host = ""
    return host == domain


class DomainValidator:
    """Answers 403 to requests whose Host is not the configured domain."""

    def __init__(self, app: Callable[..., Iterable[bytes]], domain: str) -> None:
        self.app = app
        self.domain = domain

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        host = environ.get("HTTP_HOST") or environ.get("SERVER_NAME", "")
        if not host_matches(host, self.domain):
            start_response("403 Forbidden", [("Content-Length", "0")])
            return [b""]
        return self.app(environ, start_response)