import logging
from datetime import date, datetime, time
from typing import Any, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone
from django.utils.dateparse import parse_date

from marketsync.models import PendingSale, Product, ProductHistory
from marketsync.services.exceptions import ConflictError, NotFoundError, ValidationError
from marketsync.services.inventory_impl.ledger import InventoryLedger, StockChangeMetadata
from marketsync.services.inventory_impl.mapping_service import ProductMappingService

logger = logging.getLogger(__name__)


def tracking_activation_datetime() -> Optional[datetime]:
    """Start of the configured tracking activation day, or None when unset."""
    raw = getattr(settings, "TRACKING_ACTIVATION_DATE", None)
    if not raw:
        return None
    day = raw if isinstance(raw, date) else parse_date(str(raw))
    if day is None:
        return None
    return timezone.make_aware(datetime.combine(day, time.min), timezone.get_default_timezone())


class PendingSaleService:
    """
    Queue of sales whose SKU could not be resolved.

    A row leaves the pending state only through operator action: ``resolve``
    deducts stock against the chosen product, ``ignore`` drops it without
    touching inventory.
    """

    def __init__(self, ledger: Optional[InventoryLedger] = None, mapping_service: Optional[ProductMappingService] = None):
        self.ledger = ledger or InventoryLedger()
        self.mapping_service = mapping_service or ProductMappingService()

    def create(
        self,
        platform_id: int,
        platform_order_id: str,
        platform_sku: str,
        quantity: int,
        sale_date: datetime,
        raw_data: Optional[dict[str, Any]] = None,
    ) -> PendingSale:
        """
        Enqueues an unresolved sale. While a pending row exists for the same
        (platform, order, sku), that row is returned instead of a duplicate.
        """
        sale, created = PendingSale.objects.get_or_create(
            platform_id=platform_id,
            platform_order_id=str(platform_order_id),
            platform_sku=platform_sku,
            status=PendingSale.Status.PENDING,
            defaults={
                "quantity": quantity,
                "sale_date": sale_date,
                "raw_data": raw_data or {},
            },
        )
        if created:
            logger.info(f"Pending sale {sale.id} created for SKU {platform_sku} (order {platform_order_id}).")
        else:
            logger.info(f"Pending sale {sale.id} already queued for SKU {platform_sku} (order {platform_order_id}).")
        return sale

    def find_by_id(self, pending_sale_id: int) -> PendingSale:
        try:
            return PendingSale.objects.select_related("platform", "mapped_to_product").get(pk=pending_sale_id)
        except PendingSale.DoesNotExist:
            raise NotFoundError("PendingSale", pending_sale_id)

    def find_all(self, status: Optional[str] = None, platform_id: Optional[int] = None) -> QuerySet[PendingSale]:
        queryset = PendingSale.objects.select_related("platform", "mapped_to_product").order_by("-sale_date")
        cutoff = tracking_activation_datetime()
        if cutoff:
            queryset = queryset.filter(sale_date__gte=cutoff)
        if status:
            queryset = queryset.filter(status=status)
        if platform_id:
            queryset = queryset.filter(platform_id=platform_id)
        return queryset

    def get_count(self, status: str = PendingSale.Status.PENDING) -> int:
        return self.find_all(status=status).count()

    def resolve(self, pending_sale_id: int, product_id: int, resolved_by: str, create_mapping: bool = False) -> PendingSale:
        with transaction.atomic():
            sale = self._get_pending_for_update(pending_sale_id)
            if not Product.objects.filter(pk=product_id).exists():
                raise NotFoundError("Product", product_id)

            self.ledger.deduct_stock(
                product_id,
                sale.quantity,
                StockChangeMetadata(
                    change_type=ProductHistory.ChangeType.ORDER,
                    changed_by=resolved_by,
                    change_reason=f"Pending sale resolved - order {sale.platform_order_id}",
                    platform_id=sale.platform_id,
                    platform_order_id=sale.platform_order_id,
                    extra={"pending_sale_id": sale.id, "platform_sku": sale.platform_sku},
                ),
            )

            if create_mapping:
                try:
                    self.mapping_service.create(
                        platform_id=sale.platform_id,
                        platform_sku=sale.platform_sku,
                        product_id=product_id,
                        created_by=resolved_by,
                    )
                except ConflictError:
                    logger.info(f"Mapping for SKU {sale.platform_sku} already existed, keeping it.")

            sale.status = PendingSale.Status.MAPPED
            sale.mapped_to_product_id = product_id
            sale.resolved_by = resolved_by
            sale.resolved_at = timezone.now()
            sale.save(update_fields=["status", "mapped_to_product", "resolved_by", "resolved_at", "updated_at"])

        logger.info(f"Pending sale {sale.id} resolved to product {product_id} by {resolved_by}.")
        return sale

    def ignore(self, pending_sale_id: int, resolved_by: str) -> PendingSale:
        with transaction.atomic():
            sale = self._get_pending_for_update(pending_sale_id)
            sale.status = PendingSale.Status.IGNORED
            sale.resolved_by = resolved_by
            sale.resolved_at = timezone.now()
            sale.save(update_fields=["status", "resolved_by", "resolved_at", "updated_at"])

        logger.info(f"Pending sale {sale.id} ignored by {resolved_by}.")
        return sale

    def _get_pending_for_update(self, pending_sale_id: int) -> PendingSale:
        try:
            sale = PendingSale.objects.select_for_update().get(pk=pending_sale_id)
        except PendingSale.DoesNotExist:
            raise NotFoundError("PendingSale", pending_sale_id)
        if sale.status != PendingSale.Status.PENDING:
            raise ValidationError(f"Pending sale {pending_sale_id} is already {sale.status}")
        return sale
