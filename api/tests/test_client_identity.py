from __future__ import annotations

from wiki_api.services.client_identity import (
    UNKNOWN_CLIENT,
    is_valid_ipv4,
    is_valid_ipv6,
    resolve_client_identity,
)


def test_forwarded_for_takes_leftmost_entry() -> None:
    identity = resolve_client_identity({"x-forwarded-for": " 203.0.113.7 , 10.0.0.1, 10.0.0.2"})
    assert identity.value == "203.0.113.7"
    assert identity.confident is True
    assert identity.source == "x-forwarded-for"


def test_invalid_forwarded_for_falls_through_to_next_header() -> None:
    identity = resolve_client_identity({"x-forwarded-for": "not-an-ip", "x-real-ip": "198.51.100.4"})
    assert identity.value == "198.51.100.4"
    assert identity.source == "x-real-ip"


def test_header_preference_order() -> None:
    headers = {
        "fastly-client-ip": "192.0.2.9",
        "cf-connecting-ip": "192.0.2.8",
        "x-client-ip": "192.0.2.1",
    }
    assert resolve_client_identity(headers).value == "192.0.2.1"


def test_ipv6_accepted() -> None:
    identity = resolve_client_identity({"cf-connecting-ip": "2001:db8::1"})
    assert identity.value == "2001:db8::1"


def test_no_headers_returns_unknown_sentinel() -> None:
    identity = resolve_client_identity({})
    assert identity.value == UNKNOWN_CLIENT
    assert identity.confident is False


def test_peer_address_used_when_headers_missing_but_not_confident() -> None:
    identity = resolve_client_identity({}, peer_host="127.0.0.1")
    assert identity.value == "127.0.0.1"
    assert identity.confident is False


def test_ipv4_octet_range_checked() -> None:
    assert is_valid_ipv4("255.255.255.255")
    assert not is_valid_ipv4("256.1.1.1")
    assert not is_valid_ipv4("1.2.3")


def test_ipv6_shape_is_loose() -> None:
    assert is_valid_ipv6("::1")
    assert not is_valid_ipv6("::ffff:1.2.3.4")
    assert not is_valid_ipv6(":")
