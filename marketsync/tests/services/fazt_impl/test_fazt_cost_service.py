import datetime
import threading
from decimal import Decimal

import pytest
from django.db import connection

from marketsync.models import FaztConfiguration, LogisticType, Payment
from marketsync.services.exceptions import ValidationError
from marketsync.services.fazt_impl import FaztCostService
from marketsync.tests.factories import UTC_MINUS_4, OrderFactory, PaymentFactory

pytestmark = pytest.mark.django_db

MONTH = "2025-03"


@pytest.fixture
def service():
    return FaztCostService()


def flex_order(**kwargs):
    kwargs.setdefault("logistic_type", LogisticType.SELF_SERVICE)
    order = OrderFactory(**kwargs)
    PaymentFactory(order=order, fazt_is_special_zone=kwargs.get("receiver_city_id") == "TUxDQ0xBUzk3NjE")
    return order


def test_get_configuration_creates_defaults(service, seller_id):
    config = service.get_configuration(seller_id)

    assert config.default_service_type == FaztConfiguration.ServiceType.SAME_DAY_RM
    assert len(service.get_tiers(config)) == 6


def test_upsert_configuration_rejects_unknown_fields(service, seller_id):
    with pytest.raises(ValidationError):
        service.upsert_configuration(seller_id, colour="blue")


def test_upsert_configuration_validates_tiers(service, seller_id):
    with pytest.raises(ValidationError):
        service.upsert_configuration(seller_id, rate_tiers=[{"min_shipments": -1}])


def test_is_special_zone(service, seller_id, fazt_config):
    assert service.is_special_zone(seller_id, "TUxDQ0xBUzk3NjE") is True
    assert service.is_special_zone(seller_id, "TUxDQ0xBUzE") is False
    assert service.is_special_zone(seller_id, None) is False


def test_packs_count_as_one_shipment(service, seller_id, fazt_config):
    flex_order(pack_id=1)
    flex_order(pack_id=1)
    flex_order()
    flex_order(logistic_type=LogisticType.SELF_SERVICE_COST)

    assert service.count_unique_flex_shipments(seller_id, MONTH) == 3


def test_cross_docking_and_other_months_are_not_counted(service, seller_id, fazt_config):
    flex_order()
    flex_order(logistic_type=LogisticType.CROSS_DOCKING)
    flex_order(logistic_type=LogisticType.FULFILLMENT)
    flex_order(date_created=datetime.datetime(2025, 4, 1, 0, 30, tzinfo=UTC_MINUS_4))

    assert service.count_unique_flex_shipments(seller_id, MONTH) == 1


def test_month_boundary_uses_utc_minus_4(service, seller_id, fazt_config):
    # 03:30 UTC on April 1st is still March 31st at UTC-4.
    flex_order(date_created=datetime.datetime(2025, 4, 1, 3, 30, tzinfo=datetime.timezone.utc))

    assert service.count_unique_flex_shipments(seller_id, MONTH) == 1


def test_calculate_shipment_cost_with_surcharges(service, seller_id, fazt_config):
    breakdown = service.calculate_shipment_cost(seller_id, MONTH, city_id="TUxDQ0xBUzk3NjE", is_xl_package=True)

    # No shipments yet: first tier, 3000 + 1000 special zone + 2000 XL.
    assert breakdown.base_cost == Decimal("3000")
    assert breakdown.subtotal == Decimal("6000")
    assert breakdown.iva_amount == Decimal("1140")
    assert breakdown.total_cost == Decimal("7140")
    assert breakdown.is_special_zone is True


def test_calculate_shipment_cost_next_day(service, seller_id, fazt_config):
    breakdown = service.calculate_shipment_cost(seller_id, MONTH, service_type="next_day_v_region")

    assert breakdown.base_cost == Decimal("3500")
    assert breakdown.total_cost == Decimal("4165")


def test_recalculate_updates_every_flex_payment(service, seller_id, fazt_config):
    normal = flex_order()
    special = flex_order(receiver_city_id="TUxDQ0xBUzk3NjE")
    other = OrderFactory(logistic_type=LogisticType.FULFILLMENT)
    PaymentFactory(order=other)

    result = service.recalculate_monthly_costs(seller_id, MONTH)

    assert result.shipments_count == 2
    assert result.rate_per_shipment == Decimal("3570")
    assert result.special_zone_rate == Decimal("4760")
    assert result.total_updated == 2
    assert Payment.objects.get(order=normal).fazt_cost == Decimal("3570")
    assert Payment.objects.get(order=special).fazt_cost == Decimal("4760")
    assert Payment.objects.get(order=other).fazt_cost is None


def test_recalculate_moves_to_a_cheaper_tier(service, seller_id, fazt_config):
    for _ in range(201):
        flex_order()

    result = service.recalculate_monthly_costs(seller_id, MONTH)

    assert result.rate_per_shipment == Decimal("2800") + Decimal("532")


def test_later_recalculation_restamps_earlier_orders_at_the_final_tier(service, seller_id):
    service.upsert_configuration(
        seller_id,
        rate_tiers=[
            {"min_shipments": 0, "max_shipments": 2, "same_day_rm": "3000", "next_day_v_region": "3500"},
            {"min_shipments": 3, "max_shipments": None, "same_day_rm": "2000", "next_day_v_region": "2500"},
        ],
    )
    early = [flex_order(), flex_order()]

    first = service.recalculate_monthly_costs(seller_id, MONTH)

    assert first.shipments_count == 2
    assert {Payment.objects.get(order=order).fazt_cost for order in early} == {Decimal("3570")}

    late = [flex_order(), flex_order()]
    second = service.recalculate_monthly_costs(seller_id, MONTH)

    assert second.shipments_count == 4
    assert second.total_updated == 4
    flex_payments = Payment.objects.filter(order__in=early + late)
    assert set(flex_payments.values_list("fazt_cost", flat=True)) == {Decimal("2380")}


def test_recalculate_without_tiers_changes_nothing(service, seller_id):
    service.upsert_configuration(seller_id, rate_tiers=[])
    order = flex_order()

    result = service.recalculate_monthly_costs(seller_id, MONTH)

    assert result.total_updated == 0
    assert Payment.objects.get(order=order).fazt_cost is None


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(connection.vendor == "sqlite", reason="row locks need a server database")
def test_concurrent_recalculations_settle_on_the_final_count(seller_id, fazt_tiers):
    service = FaztCostService()
    service.upsert_configuration(seller_id, rate_tiers=fazt_tiers)
    for _ in range(3):
        flex_order()

    def run():
        try:
            FaztCostService().recalculate_monthly_costs(seller_id, MONTH)
        finally:
            connection.close()

    threads = [threading.Thread(target=run) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert set(Payment.objects.values_list("fazt_cost", flat=True)) == {Decimal("3570")}
