import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional

from django.conf import settings
from django.utils import timezone

from marketsync.services.dates import days_between, days_of_month, ml_timezone, year_month_of
from marketsync.services.exceptions import AuthExpiredError, UpstreamUnavailableError, ValidationError
from marketsync.services.fazt_impl import FaztCostService
from marketsync.services.fazt_impl.service import MonthlyRecalculation
from marketsync.services.mercadolibre_impl.orders_api import MercadoLibreOrdersAPI
from marketsync.services.order_sync_impl.exceptions import OrderSyncError
from marketsync.services.order_sync_impl.fetcher import EnrichedOrder, OrderEnricher, OrderFetcher
from marketsync.services.order_sync_impl.persister import OrderPersister

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    seller_id: int
    date: Optional[date] = None
    synced: int = 0
    failed: int = 0
    failed_order_ids: List[Any] = field(default_factory=list)
    touched_months: set = field(default_factory=set)
    fazt_tier: Optional[MonthlyRecalculation] = None
    error: Optional[str] = None

    @property
    def total(self) -> int:
        return self.synced + self.failed

    def as_dict(self) -> Dict[str, Any]:
        return {
            "seller_id": self.seller_id,
            "date": self.date.isoformat() if self.date else None,
            "synced": self.synced,
            "failed": self.failed,
            "failed_order_ids": self.failed_order_ids,
            "fazt_shipments": self.fazt_tier.shipments_count if self.fazt_tier else None,
            "fazt_rate": str(self.fazt_tier.rate_per_shipment) if self.fazt_tier else None,
            "error": self.error,
        }


@dataclass
class RangeSyncResult:
    seller_id: int
    from_date: date
    to_date: date
    days: List[SyncResult] = field(default_factory=list)
    recalculations: Dict[str, MonthlyRecalculation] = field(default_factory=dict)

    @property
    def synced(self) -> int:
        return sum(day.synced for day in self.days)

    @property
    def failed(self) -> int:
        return sum(day.failed for day in self.days)

    @property
    def failed_days(self) -> List[date]:
        return [day.date for day in self.days if day.error]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "seller_id": self.seller_id,
            "from_date": self.from_date.isoformat(),
            "to_date": self.to_date.isoformat(),
            "synced": self.synced,
            "failed": self.failed,
            "days": [day.as_dict() for day in self.days],
            "recalculated_months": sorted(self.recalculations),
        }


def chunked(values: List[Any], size: int) -> Iterable[List[Any]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


class OrderSyncOrchestrator:
    """
    Brings a seller's Mercado Libre orders into the local database.

    Flow per window:
    1.  Page through the order search (all pages or nothing).
    2.  Split the orders into batches. Within a batch, the per-order
        enrichment fetches run on a thread pool.
    3.  Persist each order in its own transaction on the calling thread. A
        failing order is logged and counted; its siblings carry on.
    4.  Recompute the courier tier once for every month the run touched.
    """

    def __init__(
        self,
        api_factory: Optional[Callable[[int], MercadoLibreOrdersAPI]] = None,
        persister: Optional[OrderPersister] = None,
        fazt: Optional[FaztCostService] = None,
        batch_size: Optional[int] = None,
        max_workers: Optional[int] = None,
        days_per_batch: Optional[int] = None,
        batch_pause_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_factory = api_factory or MercadoLibreOrdersAPI.for_seller
        self.fazt = fazt or FaztCostService()
        self.persister = persister or OrderPersister(fazt=self.fazt)
        self.batch_size = batch_size or getattr(settings, "ORDER_SYNC_BATCH_SIZE", 10)
        self.max_workers = max_workers or getattr(settings, "ORDER_SYNC_MAX_WORKERS", 5)
        self.days_per_batch = days_per_batch or getattr(settings, "ORDER_SYNC_DAYS_PER_BATCH", 3)
        if batch_pause_seconds is None:
            batch_pause_seconds = getattr(settings, "ORDER_SYNC_BATCH_PAUSE_SECONDS", 2)
        self.batch_pause_seconds = batch_pause_seconds
        self.sleep = sleep

    # --- entry points ------------------------------------------------------

    def sync_date(self, seller_id: int, day: date) -> SyncResult:
        api = self.api_factory(seller_id)
        orders = self._fetch(lambda: OrderFetcher(api).fetch_created_on(day), f"{day}")
        result = SyncResult(seller_id=seller_id, date=day)
        result.touched_months.add(year_month_of(day))
        self._process_orders(api, orders, result)

        recalculations = self._recalculate(seller_id, result.touched_months)
        result.fazt_tier = recalculations.get(year_month_of(day))
        logger.info(f"Sync of {day} for seller {seller_id} finished: {result.synced} synced, {result.failed} failed.")
        return result

    def sync_range(self, seller_id: int, from_date: date, to_date: date) -> RangeSyncResult:
        days = days_between(from_date, to_date)
        max_days = getattr(settings, "ORDER_SYNC_MAX_RANGE_DAYS", 62)
        if len(days) > max_days:
            raise ValidationError(f"Range of {len(days)} days exceeds the maximum of {max_days}")
        return self._sync_days(seller_id, days)

    def sync_month(self, seller_id: int, year_month: str) -> RangeSyncResult:
        today = timezone.now().astimezone(ml_timezone()).date()
        days = [day for day in days_of_month(year_month) if day <= today]
        if not days:
            raise ValidationError(f"Month {year_month} has not started yet")
        return self._sync_days(seller_id, days)

    def sync_status_changes(self, seller_id: int, from_date: date, to_date: date) -> SyncResult:
        """Revisits orders updated in the range, catching cancellations and refunds after creation."""
        days_between(from_date, to_date)
        api = self.api_factory(seller_id)
        orders = self._fetch(lambda: OrderFetcher(api).fetch_updated_between(from_date, to_date), f"{from_date}..{to_date}")
        result = SyncResult(seller_id=seller_id)
        self._process_orders(api, orders, result)
        self._recalculate(seller_id, result.touched_months)
        logger.info(
            f"Status-change sync {from_date}..{to_date} for seller {seller_id} finished: {result.synced} synced, {result.failed} failed."
        )
        return result

    # --- phases ------------------------------------------------------------

    def _fetch(self, fetch: Callable[[], List[Dict[str, Any]]], label: str) -> List[Dict[str, Any]]:
        try:
            return fetch()
        except AuthExpiredError:
            raise
        except UpstreamUnavailableError as e:
            logger.error(f"Order search for {label} failed: {e}")
            raise OrderSyncError.from_exception(e) from e

    def _sync_days(self, seller_id: int, days: List[date]) -> RangeSyncResult:
        api = self.api_factory(seller_id)
        result = RangeSyncResult(seller_id=seller_id, from_date=days[0], to_date=days[-1])
        touched_months = {year_month_of(day) for day in days}

        batches = list(chunked(days, self.days_per_batch))
        for index, batch in enumerate(batches):
            if index:
                self.sleep(self.batch_pause_seconds)
            fetched = self._fetch_days(api, batch)
            for day in batch:
                day_result = SyncResult(seller_id=seller_id, date=day)
                outcome = fetched[day]
                if isinstance(outcome, AuthExpiredError):
                    raise outcome
                if isinstance(outcome, Exception):
                    day_result.error = OrderSyncError.from_exception(outcome).message
                    logger.error(f"Skipping {day} for seller {seller_id}: {outcome}")
                else:
                    self._process_orders(api, outcome, day_result)
                    touched_months |= day_result.touched_months
                result.days.append(day_result)

        result.recalculations = self._recalculate(seller_id, touched_months)
        logger.info(
            f"Sync of {result.from_date}..{result.to_date} for seller {seller_id} finished: "
            f"{result.synced} synced, {result.failed} failed, {len(result.failed_days)} days not fetched."
        )
        return result

    def _fetch_days(self, api: MercadoLibreOrdersAPI, days: List[date]) -> Dict[date, Any]:
        """Fetches several days at once. Each entry is the day's orders or the exception that stopped it."""

        def fetch(day: date) -> Any:
            try:
                return OrderFetcher(api).fetch_created_on(day)
            except (AuthExpiredError, UpstreamUnavailableError) as e:
                return e

        with ThreadPoolExecutor(max_workers=min(len(days), self.max_workers)) as executor:
            return dict(zip(days, executor.map(fetch, days)))

    def _process_orders(self, api: MercadoLibreOrdersAPI, orders: List[Dict[str, Any]], result: SyncResult) -> None:
        enricher = OrderEnricher(api)
        for batch in chunked(orders, self.batch_size):
            with ThreadPoolExecutor(max_workers=min(len(batch), self.max_workers)) as executor:
                futures = [(summary, executor.submit(enricher.enrich, summary)) for summary in batch]

            for summary, future in futures:
                order_id = summary.get("id")
                try:
                    enriched: EnrichedOrder = future.result()
                    order = self.persister.save_order(enriched)
                except Exception as e:
                    logger.error(f"Failed to sync order {order_id} for seller {result.seller_id}: {e}", exc_info=True)
                    result.failed += 1
                    result.failed_order_ids.append(order_id)
                    continue
                result.synced += 1
                if order.date_approved:
                    result.touched_months.add(year_month_of(order.date_approved))

    def _recalculate(self, seller_id: int, months: Iterable[str]) -> Dict[str, MonthlyRecalculation]:
        return {year_month: self.fazt.recalculate_monthly_costs(seller_id, year_month) for year_month in sorted(months)}
