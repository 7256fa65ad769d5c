"""IP allowlist for the operator API.

``settings.API_ALLOWED_IPS`` holds plain addresses or CIDR ranges, IPv4 or
IPv6. An empty list admits every caller, which is what local development
runs with. Behind a reverse proxy, set ``API_TRUST_FORWARDED_FOR`` so the
left-most ``X-Forwarded-For`` address is checked instead of the proxy's.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import TYPE_CHECKING, Union

from django.conf import settings
from rest_framework.permissions import BasePermission

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

logger = logging.getLogger(__name__)

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

# Parsed once per process.
_parsed_networks: list[Network] | None = None


def reset_allowed_networks() -> None:
    global _parsed_networks  # noqa: PLW0603
    _parsed_networks = None


def _get_allowed_networks() -> list[Network]:
    global _parsed_networks  # noqa: PLW0603
    if _parsed_networks is None:
        networks: list[Network] = []
        for entry in getattr(settings, "API_ALLOWED_IPS", []):
            entry = entry.strip()
            if not entry:
                continue
            try:
                networks.append(ipaddress.ip_network(entry, strict=False))
            except ValueError:
                logger.warning(f"Ignoring invalid API_ALLOWED_IPS entry: {entry}")
        _parsed_networks = networks
    return _parsed_networks


def client_address(request: Request) -> str:
    if getattr(settings, "API_TRUST_FORWARDED_FOR", False):
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "")


class IPWhitelistPermission(BasePermission):
    """Allow access only from the addresses or ranges in ``settings.API_ALLOWED_IPS``."""

    message = "Request blocked: IP address is not in the allowlist."

    def has_permission(self, request: Request, view: APIView) -> bool:
        allowed = _get_allowed_networks()
        if not allowed:
            return True

        address = client_address(request)
        try:
            client_ip = ipaddress.ip_address(address)
        except ValueError:
            logger.warning(f"Could not parse client address: {address}")
            return False

        return any(client_ip in network for network in allowed)
