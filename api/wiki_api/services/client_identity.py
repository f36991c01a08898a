"""Best-effort caller identity from forwarding headers.

Any caller that controls its own request headers can spoof these values unless
the deployment sits behind a proxy that overwrites them. The result is only
used to share the local rate limit fairly, never for security decisions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional

UNKNOWN_CLIENT = "unknown"

# Preference order; x-forwarded-for is the only one carrying a hop list.
CLIENT_IP_HEADERS = (
    "x-forwarded-for",
    "x-client-ip",
    "x-real-ip",
    "cf-connecting-ip",
    "true-client-ip",
    "fastly-client-ip",
)

_IPV4_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")


@dataclass(frozen=True)
class ClientIdentity:
    value: str
    confident: bool
    source: Optional[str] = None


def is_valid_ipv4(ip: str) -> bool:
    if not _IPV4_RE.match(ip):
        return False
    return all(0 <= int(octet) <= 255 for octet in ip.split("."))


def is_valid_ipv6(ip: str) -> bool:
    # Loose shape check only: colons present, no dotted quad, not trivially short.
    return ":" in ip and "." not in ip and len(ip) > 2


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.title())
    return (value or "").strip()


def resolve_client_identity(headers: Mapping[str, str], peer_host: Optional[str] = None) -> ClientIdentity:
    """Return the first plausible client IP from the header list.

    Falls back to the socket peer (not confident: usually the proxy) and then
    to UNKNOWN_CLIENT. Never raises.
    """
    for name in CLIENT_IP_HEADERS:
        ip = _header(headers, name)
        if not ip:
            continue
        if name == "x-forwarded-for" and "," in ip:
            ip = ip.split(",", 1)[0].strip()
        if ip and (is_valid_ipv4(ip) or is_valid_ipv6(ip)):
            return ClientIdentity(value=ip, confident=True, source=name)

    peer = (peer_host or "").strip()
    if peer:
        return ClientIdentity(value=peer, confident=False, source="peer")
    return ClientIdentity(value=UNKNOWN_CLIENT, confident=False)
