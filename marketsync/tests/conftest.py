from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from marketsync.api.permissions.ip_whitelist_permission import reset_allowed_networks
from marketsync.services.fazt_impl import FaztCostService


@pytest.fixture(autouse=True)
def _disable_ssl_redirect(settings: pytest.FixtureRequest) -> None:
    """Disable SECURE_SSL_REDIRECT for all tests.

    When DEBUG=False (the CI/production default), Django's SecurityMiddleware
    redirects every HTTP request to HTTPS with a 301. The test client uses
    plain HTTP, so every request would fail with an unexpected redirect.
    """
    settings.SECURE_SSL_REDIRECT = False  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def _tax_and_tracking_defaults(settings: pytest.FixtureRequest) -> None:
    settings.VAT_PERCENTAGE = "19"  # type: ignore[attr-defined]
    settings.TRACKING_ACTIVATION_DATE = "2024-01-01"  # type: ignore[attr-defined]
    settings.MERCADOLIBRE_SELLER_ID = ""  # type: ignore[attr-defined]


@pytest.fixture
def seller_id() -> int:
    return 123456


@pytest.fixture
def sale_day() -> date:
    return date(2025, 3, 14)


@pytest.fixture
def fazt_tiers() -> list[dict]:
    return [
        {"min_shipments": 0, "max_shipments": 200, "same_day_rm": "3000", "next_day_v_region": "3500"},
        {"min_shipments": 201, "max_shipments": 400, "same_day_rm": "2800", "next_day_v_region": "3300"},
        {"min_shipments": 401, "max_shipments": 600, "same_day_rm": "2600", "next_day_v_region": "3100"},
        {"min_shipments": 601, "max_shipments": None, "same_day_rm": "2400", "next_day_v_region": "2900"},
    ]


@pytest.fixture
def fazt_config(db, seller_id, fazt_tiers):
    return FaztCostService().upsert_configuration(
        seller_id,
        rate_tiers=fazt_tiers,
        special_zone_surcharge=Decimal("1000"),
        special_zone_city_ids=["TUxDQ0xBUzk3NjE"],
    )


@pytest.fixture(autouse=True)
def _reset_ip_allowlist():
    """The allowlist is parsed once per process; tests override it per case."""
    reset_allowed_networks()
    yield
    reset_allowed_networks()


API_KEY = "test-secret-key"


@pytest.fixture
def api_client(settings) -> APIClient:
    """APIClient carrying a valid API key, with the IP allowlist open."""
    settings.API_KEY = API_KEY
    settings.API_ALLOWED_IPS = []
    client = APIClient()
    client.credentials(HTTP_X_API_KEY=API_KEY, HTTP_X_OPERATOR="ops@tienda.cl")
    return client
