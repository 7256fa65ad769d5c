"""Header-based API key authentication for the marketsync API.

The ``X-API-KEY`` header is checked against ``settings.API_KEY`` with a
constant-time comparison. Callers may name themselves in ``X-OPERATOR``;
that name is what pending-sale resolutions and new mappings are attributed
to, so operator actions stay traceable in the inventory ledger.

A missing key header falls through to the next authenticator. A present but
wrong key is rejected outright.
"""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from django.conf import settings
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

if TYPE_CHECKING:
    from rest_framework.request import Request

_KEY_HEADER = "HTTP_X_API_KEY"
_OPERATOR_HEADER = "HTTP_X_OPERATOR"
DEFAULT_OPERATOR = "api"
MAX_OPERATOR_LENGTH = 255


class ApiOperator:
    """The caller behind a valid API key, as seen by ``request.user``."""

    is_authenticated: bool = True

    def __init__(self, name: str = DEFAULT_OPERATOR) -> None:
        self.name = name

    def __str__(self) -> str:
        return self.name


class ApiKeyAuthentication(BaseAuthentication):
    """Authenticate requests bearing a valid ``X-API-KEY`` header.

    * Header missing: return ``None``.
    * ``settings.API_KEY`` unset: reject, so a missing key never opens the API.
    * Header valid: return ``(ApiOperator(name), "api_key")``.
    * Header invalid: reject.
    """

    def authenticate(self, request: Request) -> tuple[ApiOperator, str] | None:
        key_from_header: str | None = request.META.get(_KEY_HEADER)
        if key_from_header is None:
            return None

        configured_key: str = getattr(settings, "API_KEY", "")
        if not configured_key:
            raise AuthenticationFailed("API key authentication is not configured on the server.")

        if not hmac.compare_digest(key_from_header, configured_key):
            raise AuthenticationFailed("Invalid API key.")

        operator = (request.META.get(_OPERATOR_HEADER) or "").strip()[:MAX_OPERATOR_LENGTH]
        return ApiOperator(operator or DEFAULT_OPERATOR), "api_key"

    def authenticate_header(self, request: Request) -> str:
        return "X-API-KEY"


def operator_name(request: Request) -> str:
    """Name to record as ``resolved_by``/``created_by`` for the current request."""
    user = getattr(request, "user", None)
    if isinstance(user, ApiOperator):
        return user.name
    if user is not None and getattr(user, "is_authenticated", False):
        return getattr(user, "get_username", lambda: str(user))()
    return DEFAULT_OPERATOR
