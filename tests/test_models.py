import json

import pytest

from suipanel.models import (
    Endpoint,
    Inbound,
    Outbound,
    Service,
    TelegramBotConfig,
    TelegramTariff,
    Tls,
)


def test_outbound_round_trip():
    out = Outbound.from_json({"id": 3, "type": "direct", "tag": "d", "x": 1})
    assert out.id == 3
    assert out.options == {"x": 1}
    assert out.to_json() == {"type": "direct", "tag": "d", "x": 1}


def test_outbound_accepts_text():
    out = Outbound.from_json(json.dumps({"type": "socks", "tag": "s", "server": "h"}))
    assert (out.type, out.tag, out.options) == ("socks", "s", {"server": "h"})


def test_outbound_requires_string_tag():
    with pytest.raises(ValueError):
        Outbound.from_json({"type": "direct"})


def test_non_object_rejected():
    with pytest.raises(ValueError):
        Inbound.from_json("[1, 2]")


def test_non_numeric_id_ignored():
    out = Outbound.from_json({"id": "7", "tag": "t"})
    assert out.id == 0
    assert out.type == ""


def test_endpoint_warp_becomes_wireguard():
    ep = Endpoint.from_json({"id": 1, "type": "warp", "tag": "w", "ext": {"k": "v"}, "mtu": 1280})
    assert ep.ext == {"k": "v"}
    result = ep.to_json()
    assert result == {"type": "wireguard", "tag": "w", "mtu": 1280}


def test_endpoint_requires_tag():
    with pytest.raises(ValueError):
        Endpoint.from_json({"type": "wireguard", "tag": 5})


def test_inbound_splits_fields():
    inb = Inbound.from_json(
        {
            "id": 2,
            "type": "vless",
            "tag": "in",
            "tls_id": 4,
            "tls": {"enabled": True},
            "users": [{"name": "u"}],
            "addrs": [{"server": "a"}],
            "out_json": {"k": 1},
            "listen_port": 443,
        }
    )
    assert (inb.id, inb.tls_id) == (2, 4)
    assert inb.addrs == [{"server": "a"}]
    assert inb.out_json == {"k": 1}
    assert inb.options == {"listen_port": 443}


def test_inbound_missing_addrs_are_none():
    inb = Inbound.from_json({"type": "mixed"})
    assert inb.addrs is None
    assert inb.out_json is None
    assert inb.tag == ""


def test_inbound_to_json_uses_tls_server():
    inb = Inbound.from_json({"type": "trojan", "tag": "t", "listen_port": 443})
    inb.tls = Tls(id=1, server={"enabled": True})
    assert inb.to_json() == {
        "type": "trojan",
        "tag": "t",
        "tls": {"enabled": True},
        "listen_port": 443,
    }


def test_inbound_marshal_full_round_trips():
    source = {"id": 9, "type": "vmess", "tag": "v", "tls_id": 1, "addrs": [], "out_json": {}, "p": 1}
    full = Inbound.from_json(source).marshal_full()
    assert full == source
    assert Inbound.from_json(full).marshal_full() == full


def test_service_round_trip():
    svc = Service.from_json({"id": 5, "type": "derp", "tag": "s", "tls_id": 2, "tls": {}, "port": 1})
    assert svc.options == {"port": 1}
    assert svc.to_json() == {"type": "derp", "tag": "s", "port": 1}
    assert svc.marshal_full() == {"id": 5, "type": "derp", "tag": "s", "tls_id": 2, "port": 1}


def test_from_json_does_not_alias_input():
    source = {"tag": "o", "nested": {"a": 1}}
    out = Outbound.from_json(source)
    out.options["nested"]["a"] = 2
    assert source["nested"]["a"] == 1


def test_download_links_round_trip():
    cfg = TelegramBotConfig()
    assert cfg.get_download_links() == {}
    links = {"android": "https://example.com/a", "ios": "https://example.com/i"}
    cfg.set_download_links(links)
    assert cfg.get_download_links() == links


def test_download_links_none_and_garbage():
    cfg = TelegramBotConfig()
    cfg.set_download_links(None)
    assert cfg.download_links == "{}"
    cfg.download_links = "not json"
    assert cfg.get_download_links() == {}


def test_tariff_buttons_not_shared():
    first = TelegramTariff()
    second = TelegramTariff()
    first.buttons.append("x")
    assert second.buttons == []