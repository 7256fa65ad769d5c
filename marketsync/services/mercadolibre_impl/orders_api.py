import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from marketsync.services.exceptions import AuthExpiredError, UpstreamUnavailableError
from marketsync.services.mercadolibre_impl.auth_service import MercadoLibreAuthService
from marketsync.services.mercadolibre_impl.client import MercadoLibreClient
from marketsync.services.mercadolibre_impl.exceptions import MLTokenError, MLTokenExpiredError

logger = logging.getLogger(__name__)

SHIPMENTS_HEADERS = {"x-format-new": "true"}


@dataclass
class RefreshBudget:
    """
    How many token refreshes one logical request may trigger. Created per
    call (or per order when several calls belong together) and passed down
    explicitly, so concurrent requests never share a counter.
    """

    attempts: int = 1

    def consume(self) -> bool:
        if self.attempts <= 0:
            return False
        self.attempts -= 1
        return True


class MercadoLibreOrdersAPI:
    """Order, shipment and billing endpoints of Mercado Libre for one seller."""

    def __init__(
        self,
        seller_id: int | str,
        client: Optional[MercadoLibreClient] = None,
        auth_service: Optional[MercadoLibreAuthService] = None,
    ):
        self.seller_id = str(seller_id)
        self.auth_service = auth_service or MercadoLibreAuthService()
        self.client = client or MercadoLibreClient()

    @classmethod
    def for_seller(cls, seller_id: int | str, auth_service: Optional[MercadoLibreAuthService] = None) -> "MercadoLibreOrdersAPI":
        """Builds an API bound to a currently valid token of the seller."""
        auth_service = auth_service or MercadoLibreAuthService()
        try:
            token = auth_service.get_valid_token(str(seller_id))
        except MLTokenError as e:
            raise AuthExpiredError(f"No valid Mercado Libre session for seller {seller_id}, please re-authenticate") from e
        return cls(seller_id, client=MercadoLibreClient(access_token=token.access_token), auth_service=auth_service)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None, budget: Optional[RefreshBudget] = None, **kwargs: Any) -> Dict[str, Any]:
        budget = budget if budget is not None else RefreshBudget()
        while True:
            try:
                return self.client.get(path, params=params, **kwargs)
            except MLTokenExpiredError:
                if not budget.consume():
                    logger.error(f"Token for seller {self.seller_id} rejected again after refresh on {path}.")
                    raise AuthExpiredError(f"Mercado Libre session for seller {self.seller_id} expired, please re-authenticate")
                self._refresh_token()

    def _refresh_token(self) -> None:
        try:
            token = self.auth_service.force_refresh(self.seller_id)
        except MLTokenError as e:
            raise AuthExpiredError(f"Mercado Libre session for seller {self.seller_id} expired, please re-authenticate") from e
        self.client.access_token = token.access_token

    def search_orders(
        self,
        date_from: str,
        date_to: str,
        offset: int = 0,
        limit: int = 50,
        date_field: str = "date_created",
        budget: Optional[RefreshBudget] = None,
    ) -> Dict[str, Any]:
        """One page of ``orders/search``: ``{"results": [...], "paging": {"total": n, ...}}``."""
        params = {
            "seller": self.seller_id,
            f"order.{date_field}.from": date_from,
            f"order.{date_field}.to": date_to,
            "sort": "date_asc",
            "offset": offset,
            "limit": limit,
        }
        return self._get("orders/search", params=params, budget=budget)

    def search_orders_updated(self, date_from: str, date_to: str, offset: int = 0, limit: int = 50, budget: Optional[RefreshBudget] = None) -> Dict[str, Any]:
        return self.search_orders(date_from, date_to, offset=offset, limit=limit, date_field="date_last_updated", budget=budget)

    def get_order_details(self, order_id: int, budget: Optional[RefreshBudget] = None) -> Dict[str, Any]:
        return self._get(f"orders/{order_id}", budget=budget)

    def get_order_shipment(self, order_id: int, budget: Optional[RefreshBudget] = None) -> Dict[str, Any]:
        return self._get(f"orders/{order_id}/shipments", budget=budget, headers=dict(SHIPMENTS_HEADERS))

    def get_shipment_by_id(self, shipment_id: int, budget: Optional[RefreshBudget] = None) -> Dict[str, Any]:
        return self._get(f"shipments/{shipment_id}", budget=budget, headers=dict(SHIPMENTS_HEADERS))

    def get_shipment_costs(self, shipment_id: int, budget: Optional[RefreshBudget] = None) -> Dict[str, Any]:
        return self._get(f"shipments/{shipment_id}/costs", budget=budget, headers=dict(SHIPMENTS_HEADERS))

    def get_order_billing_info(self, order_id: int, budget: Optional[RefreshBudget] = None) -> Dict[str, Any]:
        return self._get(f"orders/{order_id}/billing_info", budget=budget)

    def get_pack_info(self, pack_id: int, budget: Optional[RefreshBudget] = None) -> Dict[str, Any]:
        return self._get(f"packs/{pack_id}", budget=budget)

    def fetch_optional(self, fetch: Callable[..., Dict[str, Any]], *args: Any, budget: Optional[RefreshBudget] = None) -> Optional[Dict[str, Any]]:
        """
        Runs an enrichment fetch. Upstream failures degrade to None so the
        order is still saved; an expired session is re-raised.
        """
        try:
            return fetch(*args, budget=budget)
        except AuthExpiredError:
            raise
        except UpstreamUnavailableError as e:
            logger.warning(f"{getattr(fetch, '__name__', 'fetch')}{args} failed for seller {self.seller_id}: {e}")
            return None
