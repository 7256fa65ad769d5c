from typing import Dict, Iterable, List

from marketsync.services.money import ZERO
from marketsync.services.sales_report_impl.schemas import OrderSummary, PackGroup
from marketsync.services.sales_report_impl.summary import net_profit, profit_margin


def group_into_packs(orders: Iterable[OrderSummary]) -> List[PackGroup]:
    """
    Folds orders sharing a ``pack_id`` into one group, keeping first-seen order.

    The marketplace charges shipping once per physical shipment, so shipping
    cost, income, bonus, courier cost and the external courier cost come from
    a single order of the pack. Amounts, fees and VAT are summed. Orders
    without a pack form a group of their own.
    """
    grouped: Dict[object, List[OrderSummary]] = {}
    for order in orders:
        key = ("pack", order.pack_id) if order.pack_id else ("order", order.id)
        grouped.setdefault(key, []).append(order)
    return [_build_pack(members) for members in grouped.values()]


def _build_pack(members: List[OrderSummary]) -> PackGroup:
    first = members[0]
    active = [order for order in members if not order.is_cancelled]
    shipping_source = active[0] if active else first

    gross = sum((order.gross_amount for order in active), ZERO)
    fee = sum((order.marketplace_fee for order in active), ZERO)
    iva = sum((order.iva_amount for order in active), ZERO)

    shipping_cost = shipping_source.shipping_cost
    shipping_income = shipping_source.shipping_income
    shipping_fee = shipping_cost - shipping_income
    shipping_bonus = shipping_source.shipping_bonus
    courier_cost = shipping_source.courier_cost
    flex_shipping_cost = shipping_source.flex_shipping_cost
    if not active:
        shipping_fee = shipping_income = shipping_bonus = courier_cost = flex_shipping_cost = ZERO

    total_fees, net = net_profit(gross, shipping_fee, courier_cost, fee, iva, flex_shipping_cost, shipping_bonus, shipping_income)
    return PackGroup(
        pack_id=first.pack_id,
        order_ids=[order.id for order in members],
        orders=members,
        logistic_type=first.logistic_type,
        logistic_type_label=first.logistic_type_label,
        is_cancelled=not active,
        gross_amount=gross,
        marketplace_fee=fee,
        iva_amount=iva,
        shipping_cost=shipping_cost,
        shipping_income=shipping_income,
        shipping_bonus=shipping_bonus,
        courier_cost=courier_cost,
        flex_shipping_cost=flex_shipping_cost,
        total_fees=total_fees,
        net_profit=net,
        profit_margin=profit_margin(net, gross),
    )
