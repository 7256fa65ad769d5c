from decimal import Decimal

import pytest

from marketsync.models import LogisticType
from marketsync.services.shipping_impl import ShipmentClassification, ShipmentCostClassifier


@pytest.fixture
def classifier():
    return ShipmentCostClassifier()


def shipment(logistic_type, **extra):
    payload = {
        "id": 44000000001,
        "logistic_type": logistic_type,
        "status": "delivered",
        "receiver_address": {"receiver_name": "Ana", "receiver_phone": "+56 9 1234", "city": {"id": "TUxDQ0xBUzk3NjE"}},
    }
    payload.update(extra)
    return payload


def test_flex_with_buyer_paying_shipping_is_income(classifier):
    result = classifier.classify({"id": 1}, shipment("self_service"), {"receiver": {"cost": 3990}, "gross_amount": 3990, "senders": [{"cost": 0}]})

    assert result.logistic_type == LogisticType.SELF_SERVICE
    assert result.shipping_income == Decimal("3990.00")
    assert result.shipping_cost == Decimal("0")
    assert result.payment_shipping_cost() == Decimal("3990.00")


def test_flex_free_shipping_becomes_cost_variant(classifier):
    costs = {
        "receiver": {"cost": 0},
        "senders": [{"cost": 3500, "discounts": [{"promoted_amount": 1500}, {"promoted_amount": 500}]}],
    }

    result = classifier.classify({"id": 1}, shipment("self_service"), costs)

    assert result.logistic_type == LogisticType.SELF_SERVICE_COST
    assert result.courier_cost == Decimal("3500.00")
    assert result.shipping_bonus == Decimal("2000.00")
    assert result.shipping_income == Decimal("0")
    assert result.payment_shipping_cost() == Decimal("0")


def test_cross_docking_free_shipping(classifier):
    result = classifier.classify({"id": 1}, shipment("cross_docking"), {"receiver": {"cost": 0}, "senders": [{"cost": 2000}]})

    assert result.logistic_type == LogisticType.CROSS_DOCKING_COST


def test_flex_without_costs_falls_back_to_base_cost(classifier):
    result = classifier.classify({"id": 1}, shipment("self_service", base_cost=2990), None)

    assert result.logistic_type == LogisticType.SELF_SERVICE
    assert result.shipping_income == Decimal("2990.00")


def test_fulfillment_uses_sender_charge(classifier):
    costs = {"receiver": {"cost": 4990}, "senders": [{"cost": 1200}], "gross_amount": 4990}

    result = classifier.classify({"id": 1}, shipment("fulfillment"), costs)

    assert result.shipping_cost == Decimal("1200.00")
    assert result.shipping_income == Decimal("0")
    assert result.payment_shipping_cost(upstream_value=4990) == Decimal("1200.00")


def test_drop_off_prefers_list_cost(classifier):
    result = classifier.classify({"id": 1}, shipment("drop_off", shipping_option={"list_cost": 2590}), {"senders": [{"cost": 3000}]})

    assert result.shipping_cost == Decimal("2590.00")


def test_drop_off_without_list_cost_uses_sender_cost(classifier):
    result = classifier.classify({"id": 1}, shipment("xd_drop_off"), {"senders": [{"cost": 3000}]})

    assert result.shipping_cost == Decimal("3000.00")


def test_logistic_type_from_order_when_shipment_missing(classifier):
    result = classifier.classify({"id": 1, "shipping": {"logistic_type": "fulfillment"}}, None, None)

    assert result.logistic_type == LogisticType.FULFILLMENT
    assert result.shipping_cost == Decimal("0")


def test_missing_everything_yields_zeroes(classifier):
    result = classifier.classify(None)

    assert result.logistic_type is None
    assert result.payment_shipping_cost(upstream_value="1500") == Decimal("1500.00")


def test_receiver_details_are_captured(classifier):
    result = classifier.classify({"id": 1}, shipment("self_service"), None)

    assert result.receiver_name == "Ana"
    assert result.receiver_city_id == "TUxDQ0xBUzk3NjE"
    assert result.shipment_status == "delivered"


def test_payment_shipping_cost_prefers_known_charge_over_upstream():
    classification = ShipmentClassification(logistic_type="drop_off", shipping_cost=Decimal("2590"))

    assert classification.payment_shipping_cost(upstream_value=9999) == Decimal("2590")
