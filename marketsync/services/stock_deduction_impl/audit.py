import logging
from typing import Optional

from django.db.models import QuerySet

from marketsync.models import ProductAudit

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Writes and reads the per-line outcomes of inventory deduction."""

    def record(
        self,
        order_id: str,
        platform_name: str,
        status: str,
        internal_sku: Optional[str] = None,
        secondary_sku: Optional[str] = None,
        logistic_type: Optional[str] = None,
        quantity: int = 0,
        error_message: Optional[str] = None,
    ) -> ProductAudit:
        audit = ProductAudit.objects.create(
            order_id=str(order_id),
            platform_name=platform_name,
            status=status,
            internal_sku=internal_sku,
            secondary_sku=secondary_sku,
            logistic_type=logistic_type,
            quantity_discounted=quantity,
            error_message=error_message,
        )
        if status == ProductAudit.Status.NOT_FOUND:
            logger.warning(f"{platform_name} order {order_id}, SKU {secondary_sku or internal_sku}: {error_message}")
        return audit

    def for_order(self, order_id: str, platform_name: str) -> QuerySet[ProductAudit]:
        return ProductAudit.objects.filter(order_id=str(order_id), platform_name=platform_name)

    def is_processed(self, order_id: str, platform_name: str) -> bool:
        """Any audit row marks the order as processed, whatever its status."""
        return self.for_order(order_id, platform_name).exists()
