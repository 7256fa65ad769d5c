import logging
from decimal import Decimal
from typing import Any, Optional

from django.db.models import QuerySet

from marketsync.models import MonthlyFlexCost, Order
from marketsync.models.order import FLEX_TYPES
from marketsync.services.dates import month_bounds, parse_year_month
from marketsync.services.exceptions import NotFoundError, ValidationError
from marketsync.services.money import to_decimal
from marketsync.services.tax import TaxCalculator

logger = logging.getLogger(__name__)


class MonthlyFlexCostService:
    """
    Registers the courier's flat monthly invoice and spreads its net amount
    evenly across that month's Flex orders.
    """

    def __init__(self, tax: Optional[TaxCalculator] = None):
        self.tax = tax or TaxCalculator()

    def count_flex_orders(self, seller_id: int, year_month: str) -> int:
        start, end = month_bounds(year_month)
        return Order.objects.filter(
            seller_id=seller_id,
            logistic_type__in=FLEX_TYPES,
            date_approved__gte=start,
            date_approved__lt=end,
        ).count()

    def upsert(self, seller_id: int, year_month: str, total_with_iva: Any, notes: Optional[str] = None) -> MonthlyFlexCost:
        parse_year_month(year_month)
        total = to_decimal(total_with_iva)
        if total < 0:
            raise ValidationError("Monthly Flex cost cannot be negative")

        net = self.tax.remove_iva(total)
        cost, created = MonthlyFlexCost.objects.update_or_create(
            seller_id=seller_id,
            year_month=year_month,
            defaults={
                "total_cost": total,
                "net_cost": net,
                "iva_amount": total - net,
                "flex_orders_count": self.count_flex_orders(seller_id, year_month),
                "notes": notes,
            },
        )
        logger.info(f"Monthly Flex cost {'registered' if created else 'updated'} for {year_month}: {total} over {cost.flex_orders_count} orders.")
        return cost

    def find_all(self, seller_id: int) -> QuerySet[MonthlyFlexCost]:
        return MonthlyFlexCost.objects.filter(seller_id=seller_id).order_by("-year_month")

    def find_by_month(self, seller_id: int, year_month: str) -> Optional[MonthlyFlexCost]:
        return MonthlyFlexCost.objects.filter(seller_id=seller_id, year_month=year_month).first()

    def get_cost_per_order(self, seller_id: int, year_month: str) -> Decimal:
        """Net courier cost per Flex order for the month, 0 when nothing is registered."""
        cost = self.find_by_month(seller_id, year_month)
        return cost.cost_per_order if cost else Decimal("0")

    def delete(self, seller_id: int, year_month: str) -> None:
        deleted, _ = MonthlyFlexCost.objects.filter(seller_id=seller_id, year_month=year_month).delete()
        if not deleted:
            raise NotFoundError("MonthlyFlexCost", year_month)
