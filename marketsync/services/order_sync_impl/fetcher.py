import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

from django.conf import settings
from django.db import connection

from marketsync.services.dates import format_ml_timestamp, range_bounds, search_window
from marketsync.services.mercadolibre_impl.orders_api import MercadoLibreOrdersAPI, RefreshBudget

logger = logging.getLogger(__name__)


class OrderFetcher:
    """Pages through ``orders/search`` and returns every order of a window."""

    def __init__(self, api: MercadoLibreOrdersAPI, page_size: Optional[int] = None):
        self.api = api
        self.page_size = page_size or getattr(settings, "ORDER_SYNC_PAGE_SIZE", 50)

    def fetch_created_on(self, day: date) -> List[Dict[str, Any]]:
        date_from, date_to = search_window(day)
        logger.info(f"Fetching orders of seller {self.api.seller_id} created between {date_from} and {date_to}.")
        return self._paginate(self.api.search_orders, date_from, date_to)

    def fetch_updated_between(self, from_day: date, to_day: date) -> List[Dict[str, Any]]:
        start, end = range_bounds(from_day, to_day)
        date_from, date_to = format_ml_timestamp(start), format_ml_timestamp(end - timedelta(milliseconds=1))
        logger.info(f"Fetching orders of seller {self.api.seller_id} updated between {date_from} and {date_to}.")
        return self._paginate(self.api.search_orders_updated, date_from, date_to)

    def _paginate(self, search: Callable[..., Dict[str, Any]], date_from: str, date_to: str) -> List[Dict[str, Any]]:
        """
        Accumulates every page before returning. A failing page propagates, so
        a window is either fetched completely or not at all.
        """
        orders: Dict[Any, Dict[str, Any]] = {}
        offset = 0
        while True:
            page = search(date_from, date_to, offset=offset, limit=self.page_size, budget=RefreshBudget())
            results = page.get("results") or []
            total = int((page.get("paging") or {}).get("total") or 0)
            for order in results:
                orders[order.get("id")] = order

            offset += self.page_size
            logger.debug(f"Fetched page at offset {offset - self.page_size}: {len(results)} orders of {total}.")
            if offset >= total or not results:
                break
        return list(orders.values())


@dataclass
class EnrichedOrder:
    """An order from the search results together with everything fetched around it."""

    summary: Dict[str, Any]
    details: Optional[Dict[str, Any]] = None
    shipment: Optional[Dict[str, Any]] = None
    shipment_costs: Optional[Dict[str, Any]] = None
    billing_info: Optional[Dict[str, Any]] = None

    @property
    def order_id(self) -> Any:
        return self.summary.get("id")

    @property
    def payload(self) -> Dict[str, Any]:
        """The full order when it could be fetched, else the search result."""
        if self.details:
            merged = dict(self.summary)
            merged.update(self.details)
            return merged
        return self.summary


class OrderEnricher:
    """
    Fetches details, shipment, shipment costs and billing info of one order.

    Runs on worker threads, so it only talks to the network. Every call for
    the same order shares one refresh budget.
    """

    def __init__(self, api: MercadoLibreOrdersAPI):
        self.api = api

    def enrich(self, summary: Dict[str, Any]) -> EnrichedOrder:
        try:
            return self._enrich(summary)
        finally:
            # Worker threads get their own connection if a token refresh touched the database.
            connection.close()

    def _enrich(self, summary: Dict[str, Any]) -> EnrichedOrder:
        api = self.api
        budget = RefreshBudget()
        order_id = summary.get("id")
        enriched = EnrichedOrder(summary=summary)

        enriched.details = api.fetch_optional(api.get_order_details, order_id, budget=budget)

        shipping_id = (enriched.payload.get("shipping") or {}).get("id")
        if shipping_id:
            enriched.shipment = api.fetch_optional(api.get_shipment_by_id, shipping_id, budget=budget)
        else:
            enriched.shipment = api.fetch_optional(api.get_order_shipment, order_id, budget=budget)

        shipment_id = (enriched.shipment or {}).get("id") or shipping_id
        if shipment_id:
            enriched.shipment_costs = api.fetch_optional(api.get_shipment_costs, shipment_id, budget=budget)

        enriched.billing_info = api.fetch_optional(api.get_order_billing_info, order_id, budget=budget)
        return enriched
