"""
Marketplace fee extraction from the order billing-info payload.

The endpoint has returned several shapes over time. Each shape is handled by
one strategy that returns the fee or None when its shape is absent or sums
to zero; strategies are tried in order and the first answer wins.
"""

from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from marketsync.services.money import ZERO, round_money, to_decimal

FEE_DETAIL_TYPES = frozenset({"fee", "marketplace_fee", "ml_fee", "sale_fee"})

FeeStrategy = Callable[[dict[str, Any]], Optional[Decimal]]


def _sum_abs(amounts: Iterable[Any]) -> Optional[Decimal]:
    total = sum((abs(to_decimal(amount)) for amount in amounts), ZERO)
    return round_money(total) if total > 0 else None


def _nested_billing(payload: dict[str, Any]) -> dict[str, Any]:
    nested = payload.get("billing_info")
    return nested if isinstance(nested, dict) else {}


def fee_from_billing_details(payload: dict[str, Any]) -> Optional[Decimal]:
    details = _nested_billing(payload).get("details") or []
    return _sum_abs(detail.get("amount") for detail in details if isinstance(detail, dict) and detail.get("type") in FEE_DETAIL_TYPES)


def fee_from_fees_list(payload: dict[str, Any]) -> Optional[Decimal]:
    fees = payload.get("fees") or []
    return _sum_abs(fee.get("amount") for fee in fees if isinstance(fee, dict))


def fee_from_sale_fee(payload: dict[str, Any]) -> Optional[Decimal]:
    return _sum_abs([payload.get("sale_fee")])


def fee_from_marketplace_fee(payload: dict[str, Any]) -> Optional[Decimal]:
    return _sum_abs([payload.get("marketplace_fee")])


def fee_from_transactions(payload: dict[str, Any]) -> Optional[Decimal]:
    transactions = _nested_billing(payload).get("transactions") or []
    return _sum_abs(
        transaction.get("amount") for transaction in transactions if isinstance(transaction, dict) and "fee" in str(transaction.get("type") or "")
    )


DEFAULT_STRATEGIES: tuple[FeeStrategy, ...] = (
    fee_from_billing_details,
    fee_from_fees_list,
    fee_from_sale_fee,
    fee_from_marketplace_fee,
    fee_from_transactions,
)


class MarketplaceFeeExtractor:
    def __init__(self, strategies: Iterable[FeeStrategy] = DEFAULT_STRATEGIES):
        self.strategies = tuple(strategies)

    def extract(self, billing_info: Optional[dict[str, Any]]) -> Decimal:
        """Returns the fee found by the first matching strategy, or 0."""
        if not billing_info:
            return ZERO
        for strategy in self.strategies:
            fee = strategy(billing_info)
            if fee is not None:
                return fee
        return ZERO
