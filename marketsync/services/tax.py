"""
VAT (IVA) arithmetic on gross and net amounts.

All results are rounded half-up to cents. The rate comes from
``settings.VAT_PERCENTAGE`` unless one is passed explicitly.
"""

from decimal import Decimal
from typing import Any

from django.conf import settings

from marketsync.services.money import round_money, to_decimal

DEFAULT_VAT_PERCENTAGE = Decimal("19")


class TaxCalculator:
    def __init__(self, percentage: Any = None):
        if percentage is None:
            percentage = getattr(settings, "VAT_PERCENTAGE", DEFAULT_VAT_PERCENTAGE)
        self.percentage = to_decimal(percentage, DEFAULT_VAT_PERCENTAGE)

    @property
    def rate(self) -> Decimal:
        return self.percentage / Decimal("100")

    def get_iva_percentage(self) -> Decimal:
        return self.percentage

    def calculate_iva(self, net_amount: Any) -> Decimal:
        """VAT owed on a net amount."""
        return round_money(to_decimal(net_amount) * self.rate)

    def add_iva(self, net_amount: Any) -> Decimal:
        """Gross amount for a net amount."""
        return round_money(to_decimal(net_amount) * (1 + self.rate))

    def remove_iva(self, gross_amount: Any) -> Decimal:
        """Net amount contained in a gross amount."""
        return round_money(to_decimal(gross_amount) / (1 + self.rate))

    def extract_iva(self, gross_amount: Any) -> Decimal:
        """VAT contained in a gross amount: ``gross - gross / (1 + rate)``."""
        gross = to_decimal(gross_amount)
        return round_money(gross - gross / (1 + self.rate))
