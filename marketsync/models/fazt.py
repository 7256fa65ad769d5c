import copy
from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

DEFAULT_RATE_TIERS = [
    {"min_shipments": 100, "max_shipments": 200, "same_day_rm": 3290, "next_day_v_region": 3990},
    {"min_shipments": 201, "max_shipments": 400, "same_day_rm": 2790, "next_day_v_region": 3290},
    {"min_shipments": 401, "max_shipments": 600, "same_day_rm": 2590, "next_day_v_region": 3090},
    {"min_shipments": 601, "max_shipments": 800, "same_day_rm": 2490, "next_day_v_region": 2990},
    {"min_shipments": 801, "max_shipments": 1000, "same_day_rm": 2390, "next_day_v_region": 2890},
    {"min_shipments": 1001, "max_shipments": None, "same_day_rm": 2290, "next_day_v_region": 2790},
]


def default_rate_tiers() -> list[dict]:
    return copy.deepcopy(DEFAULT_RATE_TIERS)


class FaztConfiguration(models.Model):
    """Volume-tiered rate schedule of the external Flex courier, one per seller."""

    class ServiceType(models.TextChoices):
        SAME_DAY_RM = "same_day_rm", _("Same day (Metropolitan Region)")
        NEXT_DAY_V_REGION = "next_day_v_region", _("Next day (V Region)")

    seller_id = models.BigIntegerField(unique=True)
    rate_tiers = models.JSONField(default=default_rate_tiers)
    special_zone_surcharge = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("1000"))
    xl_package_surcharge = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("2000"))
    default_service_type = models.CharField(max_length=32, choices=ServiceType.choices, default=ServiceType.SAME_DAY_RM)
    special_zone_city_ids = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Fazt configuration for seller {self.seller_id}"


class MonthlyFlexCost(models.Model):
    """Flat courier invoice for a month, amortized across that month's Flex orders."""

    seller_id = models.BigIntegerField(db_index=True)
    year_month = models.CharField(max_length=7, help_text=_("YYYY-MM"))
    net_cost = models.DecimalField(max_digits=12, decimal_places=2)
    iva_amount = models.DecimalField(max_digits=12, decimal_places=2)
    total_cost = models.DecimalField(max_digits=12, decimal_places=2)
    flex_orders_count = models.PositiveIntegerField(default=0)
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-year_month"]
        constraints = [
            models.UniqueConstraint(fields=["seller_id", "year_month"], name="unique_monthly_flex_cost"),
        ]

    @property
    def cost_per_order(self) -> Decimal:
        if not self.flex_orders_count:
            return Decimal("0")
        return (Decimal(self.net_cost) / self.flex_orders_count).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def __str__(self):
        return f"{self.year_month}: {self.total_cost} ({self.flex_orders_count} orders)"
