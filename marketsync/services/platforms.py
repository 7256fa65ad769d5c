from typing import Any, Optional

from django.conf import settings

from marketsync.models import MercadoLibreToken, Platform
from marketsync.services.exceptions import ConfigurationError, ValidationError

PLATFORM_NAMES = {
    Platform.MERCADOLIBRE: "Mercado Libre",
    Platform.FALABELLA: "Falabella",
}


def get_platform(code: str) -> Platform:
    """Returns the platform row for a code, creating the known ones on first use."""
    platform, _ = Platform.objects.get_or_create(code=code, defaults={"name": PLATFORM_NAMES.get(code, code.title())})
    return platform


def resolve_seller_id(value: Optional[Any] = None) -> int:
    """
    Seller to act for: the explicit value, else ``MERCADOLIBRE_SELLER_ID``,
    else the most recently authorized Mercado Libre account.
    """
    candidate = value or getattr(settings, "MERCADOLIBRE_SELLER_ID", None)
    if not candidate:
        token = MercadoLibreToken.objects.order_by("-updated_at").first()
        if token is None:
            raise ConfigurationError("No Mercado Libre seller configured. Set MERCADOLIBRE_SELLER_ID or authenticate first.")
        candidate = token.user_id
    try:
        return int(candidate)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid seller id '{candidate}'")
