import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from django.db import transaction
from django.db.models import QuerySet
from django.db.models.functions import Coalesce

from marketsync.models import FaztConfiguration, Order, Payment
from marketsync.models.order import COURIER_FLEX_TYPES
from marketsync.services.dates import month_bounds
from marketsync.services.exceptions import ValidationError
from marketsync.services.fazt_impl.schemas import FaztRateTier
from marketsync.services.fazt_impl.tiers import parse_tiers, select_tier
from marketsync.services.money import to_decimal
from marketsync.services.tax import TaxCalculator

logger = logging.getLogger(__name__)

WHOLE_UNIT = Decimal("1")

CONFIGURATION_FIELDS = {
    "rate_tiers",
    "special_zone_surcharge",
    "xl_package_surcharge",
    "default_service_type",
    "special_zone_city_ids",
    "is_active",
}


@dataclass
class CurrentRate:
    year_month: str
    shipments_count: int
    tier: Optional[FaztRateTier]
    same_day_rm_rate: Decimal
    next_day_v_region_rate: Decimal


@dataclass
class ShipmentCostBreakdown:
    base_cost: Decimal
    special_zone_surcharge: Decimal
    xl_surcharge: Decimal
    subtotal: Decimal
    iva_amount: Decimal
    total_cost: Decimal
    is_special_zone: bool
    service_type: str


@dataclass
class MonthlyRecalculation:
    year_month: str
    shipments_count: int
    rate_per_shipment: Decimal
    special_zone_rate: Decimal
    total_updated: int


class FaztCostService:
    """
    Volume-tiered cost of the external Flex courier.

    The rate depends on how many unique shipments the seller sends in the
    month, so every sync that touches a month ends with a single
    ``recalculate_monthly_costs`` for it: one recount, one tier lookup and two
    bulk updates. The recompute holds a row lock on the seller's
    configuration, so concurrent recomputes of the same month serialize and
    the last one to commit reflects the final count.
    """

    def __init__(self, tax: Optional[TaxCalculator] = None):
        self.tax = tax or TaxCalculator()

    # --- configuration -----------------------------------------------------

    def get_configuration(self, seller_id: int) -> FaztConfiguration:
        config, created = FaztConfiguration.objects.get_or_create(seller_id=seller_id)
        if created:
            logger.info(f"Created default Fazt configuration for seller {seller_id}.")
        return config

    def upsert_configuration(self, seller_id: int, **fields: Any) -> FaztConfiguration:
        unknown = set(fields) - CONFIGURATION_FIELDS
        if unknown:
            raise ValidationError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")
        if "rate_tiers" in fields:
            fields["rate_tiers"] = [tier.model_dump(mode="json") for tier in parse_tiers(fields["rate_tiers"])]
        if "default_service_type" in fields and fields["default_service_type"] not in FaztConfiguration.ServiceType.values:
            raise ValidationError(f"Unknown service type '{fields['default_service_type']}'")

        config, created = FaztConfiguration.objects.update_or_create(seller_id=seller_id, defaults=fields)
        logger.info(f"Fazt configuration {'created' if created else 'updated'} for seller {seller_id}.")
        return config

    def get_tiers(self, config: FaztConfiguration) -> list[FaztRateTier]:
        return parse_tiers(config.rate_tiers or [])

    def is_special_zone(self, seller_id: int, city_id: Optional[str]) -> bool:
        if not city_id:
            return False
        config = self.get_configuration(seller_id)
        return str(city_id) in {str(city) for city in config.special_zone_city_ids or []}

    # --- volume ------------------------------------------------------------

    def flex_orders(self, seller_id: int, year_month: str) -> QuerySet[Order]:
        """Courier-delivered Flex orders approved in the month."""
        start, end = month_bounds(year_month)
        return Order.objects.filter(
            seller_id=seller_id,
            logistic_type__in=COURIER_FLEX_TYPES,
            date_approved__gte=start,
            date_approved__lt=end,
        )

    def count_unique_flex_shipments(self, seller_id: int, year_month: str) -> int:
        """A multi-order pack is one shipment: orders are keyed by pack id when they have one."""
        return (
            self.flex_orders(seller_id, year_month)
            .annotate(shipment_key=Coalesce("pack_id", "id"))
            .values("shipment_key")
            .distinct()
            .count()
        )

    def get_current_rate(self, seller_id: int, year_month: str) -> CurrentRate:
        config = self.get_configuration(seller_id)
        count = self.count_unique_flex_shipments(seller_id, year_month)
        tier = select_tier(self.get_tiers(config), count)
        return CurrentRate(
            year_month=year_month,
            shipments_count=count,
            tier=tier,
            same_day_rm_rate=tier.same_day_rm if tier else Decimal("0"),
            next_day_v_region_rate=tier.next_day_v_region if tier else Decimal("0"),
        )

    # --- costs -------------------------------------------------------------

    def _iva(self, subtotal: Decimal) -> Decimal:
        # Courier invoices are in whole pesos.
        return (subtotal * self.tax.rate).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)

    def calculate_shipment_cost(
        self,
        seller_id: int,
        year_month: str,
        service_type: Optional[str] = None,
        city_id: Optional[str] = None,
        is_xl_package: bool = False,
    ) -> ShipmentCostBreakdown:
        config = self.get_configuration(seller_id)
        service_type = service_type or config.default_service_type
        rate = self.get_current_rate(seller_id, year_month)
        base = rate.tier.rate_for(service_type) if rate.tier else Decimal("0")

        is_special_zone = self.is_special_zone(seller_id, city_id)
        special_surcharge = to_decimal(config.special_zone_surcharge) if is_special_zone else Decimal("0")
        xl_surcharge = to_decimal(config.xl_package_surcharge) if is_xl_package else Decimal("0")

        subtotal = base + special_surcharge + xl_surcharge
        iva = self._iva(subtotal)
        return ShipmentCostBreakdown(
            base_cost=base,
            special_zone_surcharge=special_surcharge,
            xl_surcharge=xl_surcharge,
            subtotal=subtotal,
            iva_amount=iva,
            total_cost=subtotal + iva,
            is_special_zone=is_special_zone,
            service_type=service_type,
        )

    def recalculate_monthly_costs(self, seller_id: int, year_month: str) -> MonthlyRecalculation:
        self.get_configuration(seller_id)

        with transaction.atomic():
            config = FaztConfiguration.objects.select_for_update().get(seller_id=seller_id)
            count = self.count_unique_flex_shipments(seller_id, year_month)
            tier = select_tier(self.get_tiers(config), count)
            if tier is None:
                logger.warning(f"Seller {seller_id} has no Fazt rate tiers; skipping {year_month}.")
                return MonthlyRecalculation(year_month, count, Decimal("0"), Decimal("0"), 0)

            base = tier.rate_for(config.default_service_type)
            normal_total = base + self._iva(base)
            special_subtotal = base + to_decimal(config.special_zone_surcharge)
            special_total = special_subtotal + self._iva(special_subtotal)

            order_ids = self.flex_orders(seller_id, year_month).values("id")
            normal_updated = Payment.objects.filter(order_id__in=order_ids, fazt_is_special_zone=False).update(fazt_cost=normal_total)
            special_updated = Payment.objects.filter(order_id__in=order_ids, fazt_is_special_zone=True).update(fazt_cost=special_total)

        logger.info(
            f"Fazt costs for seller {seller_id} in {year_month}: {count} shipments, "
            f"tier {tier.min_shipments}-{tier.max_shipments or '+'}, "
            f"{normal_updated} payments at {normal_total} and {special_updated} at {special_total}."
        )
        return MonthlyRecalculation(
            year_month=year_month,
            shipments_count=count,
            rate_per_shipment=normal_total,
            special_zone_rate=special_total,
            total_updated=normal_updated + special_updated,
        )
