import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from django.db import transaction

from marketsync.models import Product, ProductHistory
from marketsync.services.exceptions import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class StockChangeMetadata:
    """Who changed a product, why, and on behalf of which platform order."""

    change_type: str = ProductHistory.ChangeType.MANUAL
    changed_by: str = "system"
    change_reason: Optional[str] = None
    platform_id: Optional[int] = None
    platform_order_id: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)


class InventoryLedger:
    """
    Mutates product stock and appends one ProductHistory row per change.

    Every read-modify-write runs under ``select_for_update`` inside a
    transaction, so overlapping deductions on one product serialize instead of
    losing updates. No floor is enforced here: callers validate availability
    first, and an oversell shows up as negative stock.
    """

    def deduct_stock(self, product_id: int, quantity: int, metadata: StockChangeMetadata) -> Product:
        return self._apply_delta(product_id, -quantity, metadata)

    def restore_stock(self, product_id: int, quantity: int, metadata: StockChangeMetadata) -> Product:
        return self._apply_delta(product_id, quantity, metadata)

    def adjust_stock(self, product_id: int, new_stock: int, metadata: StockChangeMetadata) -> Product:
        """Sets stock to an absolute value (manual counts, imports), recording the signed delta."""
        with transaction.atomic():
            product = self._lock(product_id)
            old_stock = product.stock
            product.stock = new_stock
            product.save(update_fields=["stock", "updated_at"])
            self.record_change(product, "stock", old_stock, new_stock, new_stock - old_stock, metadata)
        return product

    def validate_stock_availability(self, product_id: int, quantity: int) -> bool:
        stock = Product.objects.filter(pk=product_id).values_list("stock", flat=True).first()
        if stock is None:
            return False
        return stock >= quantity

    def record_change(
        self,
        product: Product,
        field_name: str,
        old_value: Any,
        new_value: Any,
        adjustment_amount: Optional[int],
        metadata: StockChangeMetadata,
    ) -> ProductHistory:
        return ProductHistory.objects.create(
            product=product,
            field_name=field_name,
            old_value=None if old_value is None else str(old_value),
            new_value=None if new_value is None else str(new_value),
            changed_by=metadata.changed_by,
            change_type=metadata.change_type,
            change_reason=metadata.change_reason,
            platform_id=metadata.platform_id,
            platform_order_id=metadata.platform_order_id,
            adjustment_amount=adjustment_amount,
            metadata=metadata.extra,
        )

    def get_history(
        self,
        product_id: int,
        change_type: Optional[str] = None,
        platform_id: Optional[int] = None,
        limit: Optional[int] = None,
    ):
        queryset = ProductHistory.objects.filter(product_id=product_id)
        if change_type:
            queryset = queryset.filter(change_type=change_type)
        if platform_id:
            queryset = queryset.filter(platform_id=platform_id)
        if limit:
            queryset = queryset[:limit]
        return queryset

    def _apply_delta(self, product_id: int, delta: int, metadata: StockChangeMetadata) -> Product:
        with transaction.atomic():
            product = self._lock(product_id)
            old_stock = product.stock
            product.stock = old_stock + delta
            product.save(update_fields=["stock", "updated_at"])
            self.record_change(product, "stock", old_stock, product.stock, delta, metadata)

        if product.stock < 0:
            logger.warning(f"Product {product.internal_sku} stock is negative ({product.stock}) after change of {delta}.")
        else:
            logger.info(f"Product {product.internal_sku} stock {old_stock} -> {product.stock} ({metadata.change_type}).")
        return product

    def _lock(self, product_id: int) -> Product:
        try:
            return Product.objects.select_for_update().get(pk=product_id)
        except Product.DoesNotExist:
            raise NotFoundError("Product", product_id)
