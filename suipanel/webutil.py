"""Helpers shared by the HTTP API handlers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from . import logger


@dataclass
class Msg:
    """The JSON envelope of every API reply."""

    success: bool = False
    msg: str = ""
    obj: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "msg": self.msg, "obj": self.obj}


def _split_host_port(hostport: str) -> tuple[str, str]:
    """Split ``host:port``; IPv6 hosts come in brackets. Raises ValueError."""
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {hostport!r}")
        if end + 1 >= len(hostport) or hostport[end + 1] != ":":
            raise ValueError(f"missing port in address {hostport!r}")
        host, port = hostport[1:end], hostport[end + 2:]
        if "[" in hostport[1:end] or "]" in port or "[" in port:
            raise ValueError(f"unexpected bracket in address {hostport!r}")
        return host, port
    host, sep, port = hostport.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {hostport!r}")
    if ":" in host:
        raise ValueError(f"too many colons in address {hostport!r}")
    if "[" in hostport or "]" in hostport:
        raise ValueError(f"unexpected bracket in address {hostport!r}")
    return host, port


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value:
        return value
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted and value:
            return value
    return ""


def get_remote_ip(headers: Mapping[str, str], remote_addr: str) -> str:
    """Return the client IP, preferring the first X-Forwarded-For entry."""
    forwarded = _header(headers, "X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0]
    try:
        return _split_host_port(remote_addr)[0]
    except ValueError:
        return ""


def get_hostname(host: str) -> str:
    """Return the host without its port; IPv6 hosts keep their brackets."""
    if ":" in host:
        try:
            host, _ = _split_host_port(host)
        except ValueError:
            host = ""
        if ":" in host:
            host = f"[{host}]"
    return host


def json_msg_obj(msg: str, obj: Any, err: BaseException | None) -> Msg:
    if err is None:
        return Msg(success=True, msg=msg, obj=obj)
    logger.warning("failed :", err)
    return Msg(success=False, msg=f"{msg}: {err}", obj=obj)


def json_msg(msg: str, err: BaseException | None) -> Msg:
    return json_msg_obj(msg, None, err)


def json_obj(obj: Any, err: BaseException | None) -> Msg:
    return json_msg_obj("", obj, err)


def pure_json_msg(success: bool, msg: str) -> Msg:
    return Msg(success=success, msg=msg)