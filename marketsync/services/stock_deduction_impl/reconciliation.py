import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List

from django.db.models import QuerySet

from marketsync.models import LogisticType, Order, PendingSale, Platform, ProductAudit
from marketsync.services.dates import day_bounds
from marketsync.services.pending_sales_impl.service import tracking_activation_datetime

logger = logging.getLogger(__name__)


@dataclass
class AuditSummary:
    date: date
    seller_id: int
    total_orders: int = 0
    inventory_deducted: int = 0
    fulfillment: int = 0
    not_found: int = 0
    without_audit: int = 0
    pending_mapping: int = 0
    cancelled: int = 0
    missing_logistics_data: int = 0
    already_mapped: int = 0
    tracking_active: bool = False

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


class ReconciliationService:
    """Cross-checks a day of synced Mercado Libre orders against the deduction audit trail."""

    def _orders(self, seller_id: int, day: date) -> QuerySet[Order]:
        start, end = day_bounds(day)
        return Order.objects.filter(seller_id=seller_id, date_approved__gte=start, date_approved__lt=end)

    def _audits_by_order(self, order_ids: List[str]) -> Dict[str, set]:
        statuses: Dict[str, set] = {}
        rows = ProductAudit.objects.filter(platform_name=Platform.MERCADOLIBRE, order_id__in=order_ids).values_list("order_id", "status")
        for order_id, status in rows:
            statuses.setdefault(order_id, set()).add(status)
        return statuses

    def get_audit_summary(self, seller_id: int, day: date) -> AuditSummary:
        orders = list(self._orders(seller_id, day).values("id", "status", "logistic_type"))
        order_ids = [str(order["id"]) for order in orders]
        audits = self._audits_by_order(order_ids)

        summary = AuditSummary(date=day, seller_id=seller_id, total_orders=len(orders))
        start, _ = day_bounds(day)
        cutoff = tracking_activation_datetime()
        summary.tracking_active = cutoff is None or start >= cutoff

        for order in orders:
            statuses = audits.get(str(order["id"]), set())
            if ProductAudit.Status.CANCELLED.value in statuses or order["status"] == Order.Status.CANCELLED:
                summary.cancelled += 1
            elif order["logistic_type"] == LogisticType.FULFILLMENT:
                summary.fulfillment += 1
            elif ProductAudit.Status.OK_INTERNO.value in statuses:
                summary.inventory_deducted += 1
            elif ProductAudit.Status.NOT_FOUND.value in statuses:
                summary.not_found += 1
            elif not order["logistic_type"]:
                summary.missing_logistics_data += 1
            elif not statuses:
                summary.without_audit += 1

        pending = PendingSale.objects.filter(platform__code=Platform.MERCADOLIBRE, platform_order_id__in=order_ids)
        summary.pending_mapping = pending.filter(status=PendingSale.Status.PENDING).values("platform_order_id").distinct().count()
        summary.already_mapped = pending.filter(status=PendingSale.Status.MAPPED).values("platform_order_id").distinct().count()
        logger.debug(f"Audit summary for seller {seller_id} on {day}: {summary}")
        return summary

    def get_unprocessed_orders(self, seller_id: int, day: date) -> List[Order]:
        """Orders that should have been deducted but have no audit row at all."""
        orders = (
            self._orders(seller_id, day)
            .exclude(status=Order.Status.CANCELLED)
            .exclude(logistic_type=LogisticType.FULFILLMENT)
            .exclude(logistic_type__isnull=True)
            .prefetch_related("items")
            .order_by("date_approved")
        )
        audited = set(
            ProductAudit.objects.filter(platform_name=Platform.MERCADOLIBRE, order_id__in=[str(o.id) for o in orders]).values_list("order_id", flat=True)
        )
        return [order for order in orders if str(order.id) not in audited]
