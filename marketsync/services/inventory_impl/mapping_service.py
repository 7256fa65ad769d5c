import logging
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import QuerySet

from marketsync.models import Platform, Product, ProductMapping
from marketsync.services.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class ProductMappingService:
    """CRUD for the operator-curated platform SKU to product mappings."""

    def create(
        self,
        platform_id: int,
        platform_sku: str,
        product_id: int,
        quantity: int = 1,
        created_by: Optional[str] = None,
    ) -> ProductMapping:
        if not Platform.objects.filter(pk=platform_id).exists():
            raise NotFoundError("Platform", platform_id)
        if not Product.objects.filter(pk=product_id).exists():
            raise NotFoundError("Product", product_id)
        if ProductMapping.objects.filter(platform_id=platform_id, platform_sku=platform_sku, product_id=product_id).exists():
            raise ConflictError(f"Mapping for SKU '{platform_sku}' to product {product_id} already exists")

        try:
            with transaction.atomic():
                mapping = ProductMapping.objects.create(
                    platform_id=platform_id,
                    platform_sku=platform_sku,
                    product_id=product_id,
                    quantity=quantity,
                    created_by=created_by,
                )
        except IntegrityError as e:
            # Lost a race against an identical create.
            raise ConflictError(f"Mapping for SKU '{platform_sku}' to product {product_id} already exists") from e

        logger.info(f"Created mapping {platform_sku} x{quantity} -> product {product_id} on platform {platform_id}.")
        return mapping

    def find_all(self, platform_id: Optional[int] = None) -> QuerySet[ProductMapping]:
        queryset = ProductMapping.objects.select_related("product", "platform").order_by("platform_sku", "id")
        if platform_id:
            queryset = queryset.filter(platform_id=platform_id)
        return queryset

    def find_by_platform_sku(self, platform_id: int, platform_sku: str) -> QuerySet[ProductMapping]:
        return self.find_all(platform_id).filter(platform_sku=platform_sku)

    def find_by_product(self, product_id: int) -> QuerySet[ProductMapping]:
        return self.find_all().filter(product_id=product_id)

    def toggle_active(self, mapping_id: int) -> ProductMapping:
        mapping = self._get(mapping_id)
        mapping.is_active = not mapping.is_active
        mapping.save(update_fields=["is_active", "updated_at"])
        logger.info(f"Mapping {mapping_id} is now {'active' if mapping.is_active else 'inactive'}.")
        return mapping

    def delete(self, mapping_id: int) -> None:
        mapping = self._get(mapping_id)
        mapping.delete()
        logger.info(f"Deleted mapping {mapping_id}.")

    def _get(self, mapping_id: int) -> ProductMapping:
        try:
            return ProductMapping.objects.get(pk=mapping_id)
        except ProductMapping.DoesNotExist:
            raise NotFoundError("ProductMapping", mapping_id)
