from decimal import Decimal

from marketsync.services.sales_report_impl import OrderSummary, group_into_packs


def summary(order_id, pack_id=None, cancelled=False, **amounts):
    fields = {
        "gross_amount": Decimal("10000"),
        "marketplace_fee": Decimal("1000"),
        "iva_amount": Decimal("1597"),
        "shipping_cost": Decimal("3000"),
        "shipping_income": Decimal("3000"),
    }
    fields.update(amounts)
    return OrderSummary(
        id=order_id,
        status="cancelled" if cancelled else "paid",
        is_cancelled=cancelled,
        cancellation_type="cancelled" if cancelled else None,
        logistic_type="self_service",
        logistic_type_label="Flex",
        pack_id=pack_id,
        **fields,
    )


def test_orders_without_pack_stay_alone():
    groups = group_into_packs([summary(1), summary(2)])

    assert [group.order_ids for group in groups] == [[1], [2]]
    assert groups[0].pack_id is None


def test_pack_shipping_counted_once():
    groups = group_into_packs([summary(1, pack_id=50), summary(2), summary(3, pack_id=50)])

    pack = groups[0]
    assert pack.order_ids == [1, 3]
    assert pack.gross_amount == Decimal("20000")
    assert pack.marketplace_fee == Decimal("2000")
    assert pack.shipping_income == Decimal("3000")
    # 20000 - (2000 + 3194) + 3000
    assert pack.net_profit == Decimal("17806.00")
    assert [group.order_ids for group in groups[1:]] == [[2]]


def test_cancelled_member_is_listed_but_not_summed():
    pack = group_into_packs([summary(1, pack_id=7, cancelled=True), summary(2, pack_id=7)])[0]

    assert pack.order_ids == [1, 2]
    assert pack.is_cancelled is False
    assert pack.gross_amount == Decimal("10000")


def test_fully_cancelled_pack_nets_zero():
    pack = group_into_packs([summary(1, pack_id=7, cancelled=True), summary(2, pack_id=7, cancelled=True)])[0]

    assert pack.is_cancelled is True
    assert pack.gross_amount == Decimal("0")
    assert pack.net_profit == Decimal("0")
    assert pack.profit_margin == Decimal("0")
