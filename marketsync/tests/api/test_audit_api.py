"""Tests for the inventory audit and reprocess endpoints."""

from __future__ import annotations

import pytest
from rest_framework import status

from marketsync.models import Platform, ProductAudit
from marketsync.services.stock_deduction_impl import AuditRecorder
from marketsync.tests.factories import OrderFactory, OrderItemFactory, ProductFactory

AUDIT_URL = "/api/v1/inventory/audit/"
UNPROCESSED_URL = "/api/v1/inventory/audit/unprocessed/"

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def seller(settings):
    settings.MERCADOLIBRE_SELLER_ID = "123456"


def reprocess_url(platform: str, order_id) -> str:
    return f"/api/v1/inventory/orders/{platform}/{order_id}/reprocess/"


class TestAuditSummary:
    def test_summary(self, api_client) -> None:
        deducted = OrderFactory()
        AuditRecorder().record(str(deducted.id), Platform.MERCADOLIBRE, ProductAudit.Status.OK_INTERNO)
        OrderFactory()

        response = api_client.get(AUDIT_URL, {"date": "2025-03-14"})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["total_orders"] == 2
        assert response.data["inventory_deducted"] == 1
        assert response.data["without_audit"] == 1
        assert response.data["seller_id"] == 123456

    def test_requires_date(self, api_client) -> None:
        assert api_client.get(AUDIT_URL).status_code == status.HTTP_400_BAD_REQUEST


class TestUnprocessedOrders:
    def test_lists_orders_without_audit(self, api_client) -> None:
        order = OrderFactory()
        OrderItemFactory(order=order, seller_sku="MOUSE-01")

        response = api_client.get(UNPROCESSED_URL, {"date": "2025-03-14"})

        assert response.data["count"] == 1
        assert response.data["orders"][0]["id"] == order.id
        assert response.data["orders"][0]["skus"] == ["MOUSE-01"]


class TestReprocessOrder:
    def test_reprocess_synced_order(self, api_client) -> None:
        product = ProductFactory(internal_sku="MOUSE-01", stock=5)
        order = OrderFactory()
        OrderItemFactory(order=order, seller_sku="MOUSE-01", quantity=2)

        response = api_client.post(reprocess_url("mercadolibre", order.id), {}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "processed"
        product.refresh_from_db()
        assert product.stock == 3

    def test_unknown_platform(self, api_client) -> None:
        response = api_client.post(reprocess_url("amazon", 1), {}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["code"] == "invalid"

    def test_falabella_without_payload(self, api_client) -> None:
        response = api_client.post(reprocess_url("falabella", "FAL-1"), {}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_order(self, api_client) -> None:
        response = api_client.post(reprocess_url("mercadolibre", 2000000404), {}, format="json")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["code"] == "not_found"
