from decimal import Decimal

import pytest

from marketsync.models import LogisticType, MarketplaceUser, Order, OrderItem, Payment
from marketsync.services.order_sync_impl import EnrichedOrder, OrderPersister
from marketsync.services.order_sync_impl.persister import pick_thumbnail

pytestmark = pytest.mark.django_db


def order_payload(**overrides):
    payload = {
        "id": 2000012345,
        "status": "paid",
        "date_created": "2025-03-14T10:15:00.000-04:00",
        "date_closed": "2025-03-14T10:16:00.000-04:00",
        "total_amount": 11900,
        "paid_amount": 11900,
        "currency_id": "CLP",
        "buyer": {"id": 555, "nickname": "COMPRADOR", "billing_info": {"doc_number": "11111111-1"}},
        "seller": {"id": 123456, "nickname": "TIENDA"},
        "shipping": {"id": 44000000001},
        "pack_id": None,
        "tags": ["paid"],
        "order_items": [
            {
                "item": {"id": "MLC1", "title": "Mouse inalámbrico", "seller_sku": "MOUSE-01", "thumbnail": "http://img/1.jpg"},
                "quantity": 2,
                "unit_price": 5950,
                "currency_id": "CLP",
            }
        ],
        "payments": [
            {"id": 91000000001, "status": "approved", "transaction_amount": 11900, "marketplace_fee": 1500, "shipping_cost": 0}
        ],
    }
    payload.update(overrides)
    return payload


def flex_shipment(**overrides):
    shipment = {
        "id": 44000000001,
        "status": "delivered",
        "logistic_type": "self_service",
        "receiver_address": {"receiver_name": "Ana", "receiver_phone": "+56911111111", "city": {"id": "TUxDQ0xBUzk3NjE"}},
    }
    shipment.update(overrides)
    return shipment


@pytest.fixture
def persister():
    return OrderPersister()


def test_save_order_writes_order_items_and_payments(persister, fazt_config):
    enriched = EnrichedOrder(
        summary=order_payload(),
        shipment=flex_shipment(),
        shipment_costs={"receiver": {"cost": 3990}, "gross_amount": 3990, "senders": [{"cost": 0}]},
    )

    order = persister.save_order(enriched)

    assert order.status == Order.Status.PAID
    assert order.logistic_type == LogisticType.SELF_SERVICE
    assert order.receiver_rut == "11111111-1"
    assert order.receiver_city_id == "TUxDQ0xBUzk3NjE"
    assert order.seller_id == 123456
    assert MarketplaceUser.objects.get(id=555).nickname == "COMPRADOR"

    item = order.items.get()
    assert item.seller_sku == "MOUSE-01"
    assert item.quantity == 2
    assert item.thumbnail == "http://img/1.jpg"

    payment = Payment.objects.get(id=91000000001)
    assert payment.order == order
    assert payment.iva_amount == Decimal("1900")
    assert payment.marketplace_fee == Decimal("1500")
    assert payment.shipping_cost == Decimal("3990")
    assert payment.fazt_is_special_zone is True


def test_save_order_twice_is_idempotent(persister):
    enriched = EnrichedOrder(summary=order_payload())

    persister.save_order(enriched)
    persister.save_order(enriched)

    assert Order.objects.count() == 1
    assert OrderItem.objects.count() == 1
    assert Payment.objects.count() == 1


def test_status_change_updates_existing_order(persister):
    persister.save_order(EnrichedOrder(summary=order_payload()))

    persister.save_order(EnrichedOrder(summary=order_payload(status="cancelled")))

    assert Order.objects.get(id=2000012345).status == Order.Status.CANCELLED


def test_missing_shipment_keeps_known_logistic_type(persister):
    persister.save_order(EnrichedOrder(summary=order_payload(), shipment=flex_shipment()))

    order = persister.save_order(EnrichedOrder(summary=order_payload()))

    order.refresh_from_db()
    assert order.logistic_type == LogisticType.SELF_SERVICE


def test_fee_falls_back_to_billing_info(persister):
    payload = order_payload(payments=[{"id": 91000000002, "status": "approved", "transaction_amount": 11900}])
    billing_info = {"billing_info": {"details": [{"type": "sale_fee", "amount": -1700}]}}

    persister.save_order(EnrichedOrder(summary=payload, billing_info=billing_info))

    payment = Payment.objects.get(id=91000000002)
    assert payment.marketplace_fee == Decimal("1700")


def test_order_level_charges_only_on_first_payment(persister):
    payload = order_payload(
        payments=[
            {"id": 91000000003, "status": "approved", "transaction_amount": 6000},
            {"id": 91000000004, "status": "approved", "transaction_amount": 5900},
        ]
    )
    shipment = flex_shipment(receiver_address={})
    costs = {"receiver": {"cost": 0}, "senders": [{"cost": 4500, "discounts": [{"promoted_amount": 2000}]}]}

    persister.save_order(EnrichedOrder(summary=payload, shipment=shipment, shipment_costs=costs))

    first, second = Payment.objects.get(id=91000000003), Payment.objects.get(id=91000000004)
    assert first.courier_cost == Decimal("4500")
    assert first.shipping_bonus == Decimal("2000")
    assert second.courier_cost == Decimal("0")
    assert second.shipping_bonus == Decimal("0")
    assert Order.objects.get(id=2000012345).logistic_type == LogisticType.SELF_SERVICE_COST


def test_details_payments_preferred_over_summary(persister):
    details = order_payload(payments=[{"id": 91000000005, "status": "refunded", "transaction_amount": 11900}])

    persister.save_order(EnrichedOrder(summary=order_payload(), details=details))

    assert list(Payment.objects.values_list("id", "status")) == [(91000000005, "refunded")]


@pytest.mark.parametrize(
    "item, expected",
    [
        ({"thumbnail": "a"}, "a"),
        ({"secure_thumbnail": "b"}, "b"),
        ({"pictures": [{"url": "c"}]}, "c"),
        ({"pictures": [{"secure_url": "d"}]}, "d"),
        ({}, None),
    ],
)
def test_pick_thumbnail(item, expected):
    assert pick_thumbnail(item) == expected
