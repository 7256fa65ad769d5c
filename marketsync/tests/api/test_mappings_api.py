"""Tests for /api/v1/mappings/."""

from __future__ import annotations

import pytest
from rest_framework import status

from marketsync.models import ProductMapping
from marketsync.tests.factories import PlatformFactory, ProductFactory, ProductMappingFactory

URL = "/api/v1/mappings/"

pytestmark = pytest.mark.django_db


class TestProductMappings:
    def test_create(self, api_client) -> None:
        platform = PlatformFactory()
        product = ProductFactory(internal_sku="MOUSE-01")

        response = api_client.post(URL, {"platform": platform.id, "platform_sku": "ML-MOUSE", "product": product.id, "quantity": 2}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["internal_sku"] == "MOUSE-01"
        assert response.data["created_by"] == "ops@tienda.cl"
        assert response.data["quantity"] == 2

    def test_duplicate_is_conflict(self, api_client) -> None:
        mapping = ProductMappingFactory()
        body = {"platform": mapping.platform_id, "platform_sku": mapping.platform_sku, "product": mapping.product_id}

        response = api_client.post(URL, body, format="json")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["code"] == "conflict"

    def test_list_filters_by_sku(self, api_client) -> None:
        ProductMappingFactory(platform_sku="A-1")
        ProductMappingFactory(platform_sku="B-1")

        response = api_client.get(URL, {"platform_sku": "a-1"})

        assert response.data["count"] == 1

    def test_toggle(self, api_client) -> None:
        mapping = ProductMappingFactory()

        response = api_client.post(f"{URL}{mapping.id}/toggle/")

        assert response.data["is_active"] is False

    def test_delete(self, api_client) -> None:
        mapping = ProductMappingFactory()

        assert api_client.delete(f"{URL}{mapping.id}/").status_code == status.HTTP_204_NO_CONTENT
        assert not ProductMapping.objects.exists()
        assert api_client.delete(f"{URL}{mapping.id}/").status_code == status.HTTP_404_NOT_FOUND
