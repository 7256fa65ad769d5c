"""Tests for GET /api/v1/sales/daily/ and /api/v1/sales/range/."""

from __future__ import annotations

import datetime
from decimal import Decimal

import pytest
from rest_framework import status

from marketsync.models import LogisticType
from marketsync.tests.factories import UTC_MINUS_4, OrderFactory, PaymentFactory

DAILY_URL = "/api/v1/sales/daily/"
RANGE_URL = "/api/v1/sales/range/"

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def seller(settings):
    settings.MERCADOLIBRE_SELLER_ID = "123456"


def sale(day=14, logistic_type=LogisticType.XD_DROP_OFF, **fields):
    when = datetime.datetime(2025, 3, day, 12, 0, tzinfo=UTC_MINUS_4)
    order = OrderFactory(date_created=when, date_approved=when, logistic_type=logistic_type, **fields)
    PaymentFactory(order=order, marketplace_fee=Decimal("1000"))
    return order


class TestDailySales:
    def test_returns_buckets_and_orders(self, api_client) -> None:
        full = sale(logistic_type=LogisticType.FULFILLMENT)
        sale(logistic_type=LogisticType.SELF_SERVICE)

        response = api_client.get(DAILY_URL, {"date": "2025-03-14"})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["date"] == "2025-03-14"
        assert response.data["summary"]["total_orders"] == 2
        assert set(response.data["by_logistic_type"]) == {"fulfillment", "cross_docking", "other"}
        assert [o["id"] for o in response.data["orders"]["fulfillment"]] == [full.id]

    def test_status_filter(self, api_client) -> None:
        sale()
        sale(status="cancelled")

        response = api_client.get(DAILY_URL, {"date": "2025-03-14", "status": "active"})

        assert response.data["summary"]["total_orders"] == 2
        assert len(response.data["orders"]["other"]) == 1

    def test_missing_date_is_rejected(self, api_client) -> None:
        response = api_client.get(DAILY_URL)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "date" in response.data

    def test_unknown_logistic_type_is_rejected(self, api_client) -> None:
        response = api_client.get(DAILY_URL, {"date": "2025-03-14", "logistic_type": "drone"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_without_seller_is_a_server_error(self, api_client, settings) -> None:
        settings.MERCADOLIBRE_SELLER_ID = ""

        response = api_client.get(DAILY_URL, {"date": "2025-03-14"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data["code"] == "service_error"


class TestRangeSales:
    def test_paginates(self, api_client) -> None:
        for day in (10, 11, 12):
            sale(day=day)

        response = api_client.get(RANGE_URL, {"from_date": "2025-03-10", "to_date": "2025-03-12", "limit": 2, "page": 2})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["pagination"] == {"page": 2, "limit": 2, "total": 3, "total_pages": 2}
        assert len(response.data["orders"]) == 1
        assert response.data["packs"] is None

    def test_group_by_pack(self, api_client) -> None:
        sale(day=10, pack_id=77)
        sale(day=10, pack_id=77)

        response = api_client.get(RANGE_URL, {"from_date": "2025-03-10", "to_date": "2025-03-10", "group_by_pack": "true"})

        assert len(response.data["packs"]) == 1
        assert len(response.data["packs"][0]["order_ids"]) == 2

    def test_reversed_range_is_rejected(self, api_client) -> None:
        response = api_client.get(RANGE_URL, {"from_date": "2025-03-12", "to_date": "2025-03-10"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "to_date" in response.data

    def test_limit_over_maximum_is_rejected(self, api_client) -> None:
        response = api_client.get(RANGE_URL, {"from_date": "2025-03-10", "to_date": "2025-03-12", "limit": 10001})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
