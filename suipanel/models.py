"""Database records and their sing-box JSON forms."""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def _load_object(data: Any, kind: str) -> dict[str, Any]:
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    if isinstance(data, str):
        data = json.loads(data)
    if not isinstance(data, Mapping):
        raise ValueError(f"{kind} must be a JSON object")
    return copy.deepcopy(dict(data))


def _pop_id(raw: dict[str, Any], key: str) -> int:
    value = raw.pop(key, None)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return 0


def _pop_str(raw: dict[str, Any], key: str) -> str:
    value = raw.pop(key, None)
    return value if isinstance(value, str) else ""


def _pop_required_str(raw: dict[str, Any], key: str, kind: str) -> str:
    value = raw.pop(key, None)
    if not isinstance(value, str):
        raise ValueError(f"{kind} {key} must be a string")
    return value


def _merge(combined: dict[str, Any], options: dict[str, Any] | None) -> dict[str, Any]:
    if options is not None:
        combined.update(copy.deepcopy(options))
    return combined


@dataclass
class Setting:
    id: int = 0
    key: str = ""
    value: str = ""


@dataclass
class Tls:
    id: int = 0
    name: str = ""
    server: Any = None
    client: Any = None


@dataclass
class User:
    id: int = 0
    username: str = ""
    password: str = ""
    last_logins: str = ""


@dataclass
class Client:
    id: int = 0
    enable: bool = False
    name: str = ""
    config: Any = None
    inbounds: Any = None
    links: Any = None
    volume: int = 0
    expiry: int = 0
    down: int = 0
    up: int = 0
    desc: str = ""
    group: str = ""


@dataclass
class Stats:
    id: int = 0
    date_time: int = 0
    resource: str = ""
    tag: str = ""
    direction: bool = False
    traffic: int = 0


@dataclass
class Changes:
    id: int = 0
    date_time: int = 0
    actor: str = ""
    key: str = ""
    action: str = ""
    obj: Any = None


@dataclass
class Tokens:
    id: int = 0
    desc: str = ""
    token: str = ""
    expiry: int = 0
    user_id: int = 0
    user: User | None = None


@dataclass
class Inbound:
    """An inbound; protocol-specific fields live in ``options``."""

    id: int = 0
    type: str = ""
    tag: str = ""
    tls_id: int = 0
    tls: Tls | None = None
    addrs: Any = None
    out_json: Any = None
    options: dict[str, Any] | None = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> Inbound:
        """Build from a JSON object, splitting fixed fields from options."""
        raw = _load_object(data, "inbound")
        inbound = cls(
            id=_pop_id(raw, "id"),
            type=_pop_str(raw, "type"),
            tag=_pop_str(raw, "tag"),
            tls_id=_pop_id(raw, "tls_id"),
        )
        raw.pop("tls", None)
        raw.pop("users", None)
        inbound.addrs = raw.pop("addrs", None)
        inbound.out_json = raw.pop("out_json", None)
        inbound.options = raw
        return inbound

    def to_json(self) -> dict[str, Any]:
        """Return the sing-box configuration object."""
        combined: dict[str, Any] = {"type": self.type, "tag": self.tag}
        if self.tls is not None:
            combined["tls"] = copy.deepcopy(self.tls.server)
        return _merge(combined, self.options)

    def marshal_full(self) -> dict[str, Any]:
        """Return every stored field, options merged in."""
        combined: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "tag": self.tag,
            "tls_id": self.tls_id,
            "addrs": copy.deepcopy(self.addrs),
            "out_json": copy.deepcopy(self.out_json),
        }
        return _merge(combined, self.options)


@dataclass
class Outbound:
    """An outbound; protocol-specific fields live in ``options``."""

    id: int = 0
    type: str = ""
    tag: str = ""
    options: dict[str, Any] | None = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> Outbound:
        """Build from a JSON object; the tag must be a string."""
        raw = _load_object(data, "outbound")
        outbound = cls(id=_pop_id(raw, "id"), type=_pop_str(raw, "type"))
        outbound.tag = _pop_required_str(raw, "tag", "outbound")
        outbound.options = raw
        return outbound

    def to_json(self) -> dict[str, Any]:
        """Return the sing-box configuration object."""
        return _merge({"type": self.type, "tag": self.tag}, self.options)


@dataclass
class Endpoint:
    """An endpoint; ``ext`` holds panel-only data."""

    id: int = 0
    type: str = ""
    tag: str = ""
    options: dict[str, Any] | None = field(default_factory=dict)
    ext: Any = None

    @classmethod
    def from_json(cls, data: Any) -> Endpoint:
        """Build from a JSON object; the tag must be a string."""
        raw = _load_object(data, "endpoint")
        endpoint = cls(id=_pop_id(raw, "id"), type=_pop_str(raw, "type"))
        endpoint.tag = _pop_required_str(raw, "tag", "endpoint")
        endpoint.ext = raw.pop("ext", None)
        endpoint.options = raw
        return endpoint

    def to_json(self) -> dict[str, Any]:
        """Return the sing-box configuration object; ``warp`` maps to wireguard."""
        kind = "wireguard" if self.type == "warp" else self.type
        return _merge({"type": kind, "tag": self.tag}, self.options)


@dataclass
class Service:
    """A service; type-specific fields live in ``options``."""

    id: int = 0
    type: str = ""
    tag: str = ""
    tls_id: int = 0
    tls: Tls | None = None
    options: dict[str, Any] | None = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> Service:
        """Build from a JSON object, splitting fixed fields from options."""
        raw = _load_object(data, "service")
        service = cls(
            id=_pop_id(raw, "id"),
            type=_pop_str(raw, "type"),
            tag=_pop_str(raw, "tag"),
            tls_id=_pop_id(raw, "tls_id"),
        )
        raw.pop("tls", None)
        service.options = raw
        return service

    def to_json(self) -> dict[str, Any]:
        """Return the sing-box configuration object."""
        combined: dict[str, Any] = {"type": self.type, "tag": self.tag}
        if self.tls is not None:
            combined["tls"] = copy.deepcopy(self.tls.server)
        return _merge(combined, self.options)

    def marshal_full(self) -> dict[str, Any]:
        """Return every stored field, options merged in."""
        combined: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "tag": self.tag,
            "tls_id": self.tls_id,
        }
        return _merge(combined, self.options)


@dataclass
class TelegramBotConfig:
    id: int = 0
    enabled: bool = False
    bot_token: str = ""
    webhook_domain: str = ""
    webhook_secret: str = ""
    yookassa_shop_id: str = ""
    yookassa_secret_key: str = ""
    success_redirect_url: str = ""
    failure_redirect_url: str = ""
    mini_app_url: str = ""
    download_links: str = ""
    updated_at: datetime | None = None
    created_at: datetime | None = None

    def get_download_links(self) -> dict[str, str]:
        """Return the stored platform-to-link map; bad data yields what is usable."""
        if not self.download_links:
            return {}
        try:
            parsed = json.loads(self.download_links)
        except ValueError:
            return {}
        if not isinstance(parsed, dict):
            return {}
        return {key: value for key, value in parsed.items() if isinstance(value, str)}

    def set_download_links(self, links: Mapping[str, str] | None) -> None:
        """Store a platform-to-link map as JSON."""
        self.download_links = json.dumps(
            dict(links or {}), sort_keys=True, separators=(",", ":"), ensure_ascii=False
        )


@dataclass
class TelegramTariffButton:
    id: int = 0
    tariff_id: int = 0
    label: str = ""
    action: str = ""
    payload: str = ""
    sort_order: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TelegramTariff:
    id: int = 0
    title: str = ""
    description: str = ""
    price_minor: int = 0
    currency: str = ""
    duration_days: int = 0
    sort_order: int = 0
    active: bool = False
    buttons: list[TelegramTariffButton] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TelegramUserMessage:
    id: int = 0
    user_id: int = 0
    direction: str = ""
    body: str = ""
    telegram_message_id: str = ""
    seen: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TelegramBroadcastDelivery:
    id: int = 0
    broadcast_id: int = 0
    user_id: int = 0
    telegram_message_id: str = ""
    status: str = ""
    error_message: str = ""
    sent_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TelegramUserProfile:
    id: int = 0
    telegram_id: int = 0
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    language: str = ""
    notes: str = ""
    ever_paid: bool = False
    active_subscription: bool = False
    subscription_expires_at: datetime | None = None
    last_tariff_id: int | None = None
    last_interaction_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    messages: list[TelegramUserMessage] = field(default_factory=list)
    broadcast_deliveries: list[TelegramBroadcastDelivery] = field(default_factory=list)


@dataclass
class TelegramBroadcast:
    id: int = 0
    title: str = ""
    body: str = ""
    editable: bool = False
    status: str = ""
    audience: str = ""
    sent_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deliveries: list[TelegramBroadcastDelivery] = field(default_factory=list)


@dataclass
class TelegramPromoCode:
    id: int = 0
    code: str = ""
    description: str = ""
    discount_percent: int = 0
    free_days: int = 0
    max_uses: int = 0
    used_count: int = 0
    active: bool = False
    expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None