"""
Per-order financial summary and the totals built on top of it.

Net profit of an order:

    gross - (shipping fee + courier cost + marketplace fee + VAT + external courier cost)
          + shipping bonus + shipping income

The shipping fee is zero on Flex orders where the buyer pays shipping; there
``Payment.shipping_cost`` holds income instead, which is added back. Orders
that are cancelled, refunded or in mediation are listed and counted but never
summed.
"""

from decimal import Decimal
from typing import Iterable, List, Optional

from django.db import models

from marketsync.models import LogisticType, Order, Payment
from marketsync.models.order import FLEX_INCOME_TYPES, FLEX_TYPES
from marketsync.services.money import ZERO, round_money
from marketsync.services.sales_report_impl.schemas import (
    BuyerSummary,
    LogisticTypeSummary,
    OrderItemSummary,
    OrderSummary,
    TotalsSummary,
)

HUNDRED = Decimal("100")


class ReportBucket(models.TextChoices):
    FULFILLMENT = "fulfillment", "Full"
    CROSS_DOCKING = "cross_docking", "Flex"
    OTHER = "other", "Centro de Envío"


class StatusFilter(models.TextChoices):
    ALL = "all", "All"
    ACTIVE = "active", "Active"
    CANCELLED = "cancelled", "Cancelled"
    IN_MEDIATION = "in_mediation", "In mediation"
    REFUNDED = "refunded", "Refunded"
    INACTIVE = "inactive", "Cancelled, in mediation or refunded"


def bucket_of(logistic_type: Optional[str]) -> str:
    if logistic_type == LogisticType.FULFILLMENT:
        return ReportBucket.FULFILLMENT.value
    if logistic_type in FLEX_TYPES:
        return ReportBucket.CROSS_DOCKING.value
    return ReportBucket.OTHER.value


def label_of(logistic_type: Optional[str]) -> str:
    return ReportBucket(bucket_of(logistic_type)).label


def cancellation_type(order: Order, payments: Iterable[Payment]) -> Optional[str]:
    """Mediation beats refund, refund beats a plain order cancellation."""
    statuses = {payment.status for payment in payments}
    if Payment.Status.IN_MEDIATION.value in statuses:
        return "in_mediation"
    if Payment.Status.REFUNDED.value in statuses:
        return "refunded"
    if order.status == Order.Status.CANCELLED:
        return "cancelled"
    return None


def matches_status_filter(summary: OrderSummary, status_filter: str) -> bool:
    if status_filter == StatusFilter.ALL:
        return True
    if status_filter == StatusFilter.ACTIVE:
        return not summary.is_cancelled
    if status_filter == StatusFilter.INACTIVE:
        return summary.is_cancelled
    return summary.cancellation_type == status_filter


def profit_margin(net_profit: Decimal, gross: Decimal) -> Decimal:
    if gross <= 0:
        return ZERO
    return round_money(net_profit / gross * HUNDRED)


def net_profit(
    gross: Decimal,
    shipping_fee: Decimal,
    courier_cost: Decimal,
    marketplace_fee: Decimal,
    iva_amount: Decimal,
    flex_shipping_cost: Decimal,
    shipping_bonus: Decimal,
    shipping_income: Decimal,
) -> tuple[Decimal, Decimal]:
    """Returns ``(total_fees, net_profit)``."""
    total_fees = shipping_fee + courier_cost + marketplace_fee + iva_amount + flex_shipping_cost
    return round_money(total_fees), round_money(gross - total_fees + shipping_bonus + shipping_income)


def external_flex_cost(order: Order, payments: List[Payment], cost_per_order: Decimal) -> Decimal:
    """
    Courier cost booked against a Flex order: the tiered rate stamped on its
    payment when there is one, else the month's flat cost per order.
    """
    if order.logistic_type not in FLEX_TYPES:
        return ZERO
    for payment in payments:
        if payment.fazt_cost is not None:
            return payment.fazt_cost
    return cost_per_order


def summarize_order(order: Order, cost_per_order: Decimal = ZERO) -> OrderSummary:
    """Builds the summary of an order loaded with its buyer, items and payments."""
    payments = list(order.payments.all())
    shipping_cost = sum((p.shipping_cost for p in payments), ZERO)
    marketplace_fee = sum((p.marketplace_fee for p in payments), ZERO)
    iva_amount = sum((p.iva_amount for p in payments), ZERO)
    shipping_bonus = sum((p.shipping_bonus for p in payments), ZERO)
    courier_cost = sum((p.courier_cost for p in payments), ZERO)

    is_income_flex = order.logistic_type in FLEX_INCOME_TYPES
    shipping_income = shipping_cost if is_income_flex else ZERO
    shipping_fee = ZERO if is_income_flex else shipping_cost
    flex_cost = external_flex_cost(order, payments, cost_per_order)

    gross = order.total_amount
    total_fees, net = net_profit(gross, shipping_fee, courier_cost, marketplace_fee, iva_amount, flex_cost, shipping_bonus, shipping_income)
    cancelled_as = cancellation_type(order, payments)

    buyer = None
    if order.buyer_id:
        buyer = BuyerSummary(
            id=order.buyer.id,
            nickname=order.buyer.nickname,
            first_name=order.buyer.first_name,
            last_name=order.buyer.last_name,
            receiver_name=order.receiver_name,
            receiver_phone=order.receiver_phone,
            receiver_rut=order.receiver_rut,
        )

    return OrderSummary(
        id=order.id,
        date_created=order.date_created,
        date_approved=order.date_approved,
        status=order.status,
        is_cancelled=cancelled_as is not None,
        cancellation_type=cancelled_as,
        shipment_status=order.shipment_status,
        total_amount=order.total_amount,
        paid_amount=order.paid_amount,
        logistic_type=order.logistic_type or ReportBucket.OTHER.value,
        logistic_type_label=label_of(order.logistic_type),
        pack_id=order.pack_id,
        items=[
            OrderItemSummary(
                item_id=item.item_id,
                title=item.title,
                quantity=item.quantity,
                unit_price=item.unit_price,
                seller_sku=item.seller_sku or "",
                thumbnail=item.thumbnail,
            )
            for item in order.items.all()
        ],
        shipping_cost=shipping_cost,
        shipping_income=shipping_income,
        courier_cost=courier_cost,
        marketplace_fee=marketplace_fee,
        iva_amount=iva_amount,
        shipping_bonus=shipping_bonus,
        flex_shipping_cost=flex_cost,
        gross_amount=gross,
        total_fees=total_fees,
        net_profit=net,
        profit_margin=profit_margin(net, gross),
        buyer=buyer,
    )


def summarize_totals(orders: Iterable[OrderSummary]) -> TotalsSummary:
    """
    Orders of one pack travel in a single shipment, so shipping-level amounts
    are summed once per pack.
    """
    orders = list(orders)
    totals = TotalsSummary(total_orders=len(orders))
    margins = ZERO
    shipped_packs: set = set()

    for order in orders:
        if order.cancellation_type == "cancelled":
            totals.cancelled_count += 1
            totals.cancelled_amount += order.gross_amount
        elif order.cancellation_type == "in_mediation":
            totals.mediation_count += 1
            totals.mediation_amount += order.gross_amount
        elif order.cancellation_type == "refunded":
            totals.refunded_count += 1
            totals.refunded_amount += order.gross_amount
        if order.is_cancelled:
            continue

        totals.active_orders += 1
        totals.total_items += sum(item.quantity for item in order.items)
        totals.gross_amount += order.gross_amount
        totals.marketplace_fee += order.marketplace_fee
        totals.iva_amount += order.iva_amount

        if order.pack_id and order.pack_id in shipped_packs:
            total_fees, net = net_profit(order.gross_amount, ZERO, ZERO, order.marketplace_fee, order.iva_amount, ZERO, ZERO, ZERO)
            totals.total_fees += total_fees
            totals.net_profit += net
            margins += profit_margin(net, order.gross_amount)
            continue
        if order.pack_id:
            shipped_packs.add(order.pack_id)

        totals.shipping_cost += order.shipping_cost
        totals.shipping_income += order.shipping_income
        totals.shipping_bonus += order.shipping_bonus
        totals.flex_shipping_cost += order.flex_shipping_cost
        totals.courier_cost += order.courier_cost
        totals.total_fees += order.total_fees
        totals.net_profit += order.net_profit
        margins += order.profit_margin

    if totals.active_orders:
        totals.average_order_value = round_money(totals.gross_amount / totals.active_orders)
        totals.average_profit_margin = round_money(margins / totals.active_orders)
    return totals


def summarize_bucket(bucket: str, orders: Iterable[OrderSummary]) -> LogisticTypeSummary:
    totals = summarize_totals(orders)
    return LogisticTypeSummary(logistic_type=bucket, logistic_type_label=ReportBucket(bucket).label, **totals.model_dump())


def combine_buckets(buckets: Iterable[LogisticTypeSummary]) -> TotalsSummary:
    """Grand total over bucket summaries; the margin is taken on the summed amounts."""
    combined = TotalsSummary()
    additive = [name for name in TotalsSummary.model_fields if name not in ("average_order_value", "average_profit_margin")]
    for bucket in buckets:
        for name in additive:
            setattr(combined, name, getattr(combined, name) + getattr(bucket, name))

    if combined.active_orders:
        combined.average_order_value = round_money(combined.gross_amount / combined.active_orders)
    combined.average_profit_margin = profit_margin(combined.net_profit, combined.gross_amount)
    return combined
