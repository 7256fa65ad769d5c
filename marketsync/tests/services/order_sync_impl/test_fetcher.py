import datetime
from unittest.mock import MagicMock

import pytest

from marketsync.services.exceptions import UpstreamUnavailableError
from marketsync.services.order_sync_impl import EnrichedOrder, OrderEnricher, OrderFetcher


def page(ids, total):
    return {"results": [{"id": order_id} for order_id in ids], "paging": {"total": total}}


@pytest.fixture
def api():
    api = MagicMock()
    api.seller_id = 123456
    api.fetch_optional.side_effect = lambda fetch, *args, **kwargs: fetch(*args, **kwargs)
    return api


def test_fetch_created_on_pages_until_total(api):
    api.search_orders.side_effect = [page([1, 2], 5), page([3, 4], 5), page([5], 5)]

    orders = OrderFetcher(api, page_size=2).fetch_created_on(datetime.date(2025, 3, 14))

    assert [order["id"] for order in orders] == [1, 2, 3, 4, 5]
    assert api.search_orders.call_count == 3
    args, kwargs = api.search_orders.call_args_list[0]
    assert args == ("2025-03-13T23:00:00.000-04:00", "2025-03-14T23:59:59.999-04:00")
    assert kwargs["offset"] == 0
    assert api.search_orders.call_args_list[2].kwargs["offset"] == 4


def test_fetch_deduplicates_orders_repeated_across_pages(api):
    api.search_orders.side_effect = [page([1, 2], 4), page([2, 3], 4)]

    orders = OrderFetcher(api, page_size=2).fetch_created_on(datetime.date(2025, 3, 14))

    assert sorted(order["id"] for order in orders) == [1, 2, 3]


def test_fetch_stops_on_empty_page(api):
    api.search_orders.side_effect = [page([1, 2], 10), page([], 10)]

    orders = OrderFetcher(api, page_size=2).fetch_created_on(datetime.date(2025, 3, 14))

    assert len(orders) == 2
    assert api.search_orders.call_count == 2


def test_fetch_failing_page_propagates(api):
    api.search_orders.side_effect = [page([1, 2], 4), UpstreamUnavailableError("boom")]

    with pytest.raises(UpstreamUnavailableError):
        OrderFetcher(api, page_size=2).fetch_created_on(datetime.date(2025, 3, 14))


def test_fetch_updated_between_uses_update_search(api):
    api.search_orders_updated.return_value = page([9], 1)

    orders = OrderFetcher(api, page_size=50).fetch_updated_between(datetime.date(2025, 3, 1), datetime.date(2025, 3, 2))

    assert orders == [{"id": 9}]
    args, _ = api.search_orders_updated.call_args
    assert args == ("2025-03-01T00:00:00.000-04:00", "2025-03-02T23:59:59.999-04:00")


def test_enriched_payload_prefers_details():
    enriched = EnrichedOrder(summary={"id": 1, "status": "paid", "pack_id": None}, details={"id": 1, "status": "cancelled"})

    assert enriched.payload["status"] == "cancelled"
    assert "pack_id" in enriched.payload
    assert EnrichedOrder(summary={"id": 2}).payload == {"id": 2}


def test_enricher_uses_shipping_id_from_order(api):
    api.get_order_details.return_value = {"id": 1, "shipping": {"id": 77}}
    api.get_shipment_by_id.return_value = {"id": 77, "logistic_type": "self_service"}
    api.get_shipment_costs.return_value = {"receiver": {"cost": 3990}}
    api.get_order_billing_info.return_value = {"billing_info": {}}

    enriched = OrderEnricher(api).enrich({"id": 1})

    assert enriched.shipment["logistic_type"] == "self_service"
    assert enriched.shipment_costs == {"receiver": {"cost": 3990}}
    api.get_order_shipment.assert_not_called()
    assert api.get_shipment_costs.call_args.args[0] == 77
    # All calls for the same order share one refresh budget.
    budgets = {id(c.kwargs["budget"]) for c in api.fetch_optional.call_args_list}
    assert len(budgets) == 1


def test_enricher_falls_back_to_order_shipment(api):
    api.get_order_details.return_value = None
    api.get_order_shipment.return_value = None
    api.get_order_billing_info.return_value = None

    enriched = OrderEnricher(api).enrich({"id": 1})

    api.get_order_shipment.assert_called_once()
    api.get_shipment_costs.assert_not_called()
    assert enriched.shipment is None
    assert enriched.payload == {"id": 1}
