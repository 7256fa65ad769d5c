"""Sender checks for the marketplace webhooks.

Marketplaces cannot send our API key, so the notification endpoints are
public and verified here instead.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from django.conf import settings
from rest_framework.permissions import BasePermission

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

logger = logging.getLogger(__name__)


class MercadoLibreWebhookPermission(BasePermission):
    """
    Accepts a notification only when its ``application_id`` is our app.
    Without ``MERCADOLIBRE_CLIENT_ID`` configured every delivery is accepted.
    """

    message = "Notification does not belong to this application."

    def has_permission(self, request: Request, view: APIView) -> bool:
        expected = str(getattr(settings, "MERCADOLIBRE_CLIENT_ID", "") or "")
        if not expected:
            return True
        data = request.data if isinstance(request.data, dict) else {}
        received = str(data.get("application_id", ""))
        if received != expected:
            logger.warning(f"Rejected Mercado Libre notification for application {received or '<missing>'}.")
            return False
        return True


class FalabellaWebhookPermission(BasePermission):
    """Requires ``X-WEBHOOK-TOKEN`` to match ``settings.FALABELLA_WEBHOOK_TOKEN``."""

    message = "Invalid webhook token."

    def has_permission(self, request: Request, view: APIView) -> bool:
        expected = getattr(settings, "FALABELLA_WEBHOOK_TOKEN", "")
        if not expected:
            logger.error("FALABELLA_WEBHOOK_TOKEN is not configured; rejecting Falabella notification.")
            return False
        received = request.META.get("HTTP_X_WEBHOOK_TOKEN", "")
        return hmac.compare_digest(received, expected)
