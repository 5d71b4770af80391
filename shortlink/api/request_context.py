"""Visitor details extracted from incoming requests."""

import ipaddress
from typing import Optional

from starlette.requests import Request

from shortlink.services.click_tracker import ClickContext


def parse_ip(value: Optional[str]) -> Optional[str]:
    """Canonical form of an IPv4/IPv6 address, or None if value is not one."""
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def get_client_ip(request: Request) -> str:
    """
    Client IP address, honoring proxies and load balancers.

    X-Forwarded-For can list several hops; the first one is the client.
    A hop that is not an IP address is ignored in favor of the peer.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = parse_ip(forwarded_for.split(",")[0])
        if client_ip:
            return client_ip

    peer_ip = parse_ip(request.client.host) if request.client else None
    return peer_ip or "unknown"


def build_click_context(request: Request) -> ClickContext:
    return ClickContext(
        source_ip=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        referer=request.headers.get("Referer") or "direct",
    )
