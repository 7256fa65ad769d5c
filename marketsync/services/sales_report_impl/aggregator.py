import logging
import math
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from django.db.models import QuerySet

from marketsync.models import Order
from marketsync.services.dates import DateMode, day_bounds, range_bounds, year_month_of
from marketsync.services.exceptions import ValidationError
from marketsync.services.fazt_impl import MonthlyFlexCostService
from marketsync.services.sales_report_impl.packs import group_into_packs
from marketsync.services.sales_report_impl.schemas import DailySalesReport, OrderSummary, Pagination, RangeSalesReport
from marketsync.services.sales_report_impl.summary import (
    ReportBucket,
    StatusFilter,
    bucket_of,
    combine_buckets,
    matches_status_filter,
    summarize_bucket,
    summarize_order,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 10000


class SalesAggregator:
    """Read-only sales reports over synced orders, bucketed by logistics class."""

    def __init__(self, flex_costs: Optional[MonthlyFlexCostService] = None):
        self.flex_costs = flex_costs or MonthlyFlexCostService()

    def get_daily_sales(
        self,
        seller_id: int,
        day: date,
        date_mode: str = DateMode.SII,
        logistic_type: Optional[str] = None,
        status_filter: str = StatusFilter.ALL,
    ) -> DailySalesReport:
        self._validate(date_mode, logistic_type, status_filter)
        start, end = day_bounds(day, date_mode)
        summaries = self._summaries(self._orders(seller_id, start, end), seller_id)
        summaries = [s for s in summaries if logistic_type is None or bucket_of(s.logistic_type) == logistic_type]

        by_bucket = self._by_bucket(summaries)
        by_logistic_type = {bucket: summarize_bucket(bucket, orders) for bucket, orders in by_bucket.items()}
        logger.debug(f"Daily sales for seller {seller_id} on {day}: {len(summaries)} orders.")
        return DailySalesReport(
            date=day,
            seller_id=seller_id,
            date_mode=date_mode,
            summary=combine_buckets(by_logistic_type.values()),
            by_logistic_type=by_logistic_type,
            orders={bucket: [s for s in orders if matches_status_filter(s, status_filter)] for bucket, orders in by_bucket.items()},
        )

    def get_range_sales(
        self,
        seller_id: int,
        from_date: date,
        to_date: date,
        page: int = 1,
        limit: int = 20,
        logistic_type: Optional[str] = None,
        date_mode: str = DateMode.SII,
        status_filter: str = StatusFilter.ALL,
        group_by_pack: bool = False,
    ) -> RangeSalesReport:
        self._validate(date_mode, logistic_type, status_filter)
        if to_date < from_date:
            raise ValidationError(f"Range end {to_date} is before its start {from_date}")
        if page < 1 or not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"page must be >= 1 and limit between 1 and {MAX_PAGE_SIZE}")

        start, end = range_bounds(from_date, to_date, date_mode)
        summaries = self._summaries(self._orders(seller_id, start, end), seller_id)
        summaries = [s for s in summaries if logistic_type is None or bucket_of(s.logistic_type) == logistic_type]

        by_logistic_type = {bucket: summarize_bucket(bucket, orders) for bucket, orders in self._by_bucket(summaries).items()}
        listed = [s for s in summaries if matches_status_filter(s, status_filter)]

        offset = (page - 1) * limit
        packs = None
        if group_by_pack:
            groups = group_into_packs(listed)
            total = len(groups)
            packs = groups[offset : offset + limit]
            page_orders = [order for group in packs for order in group.orders]
        else:
            total = len(listed)
            page_orders = listed[offset : offset + limit]

        return RangeSalesReport(
            from_date=from_date,
            to_date=to_date,
            seller_id=seller_id,
            date_mode=date_mode,
            summary=combine_buckets(by_logistic_type.values()),
            by_logistic_type=by_logistic_type,
            orders=page_orders,
            packs=packs,
            pagination=Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if total else 0),
        )

    def _validate(self, date_mode: str, logistic_type: Optional[str], status_filter: str) -> None:
        if date_mode not in DateMode.values:
            raise ValidationError(f"date_mode must be one of: {', '.join(DateMode.values)}")
        if logistic_type is not None and logistic_type not in ReportBucket.values:
            raise ValidationError(f"logistic_type must be one of: {', '.join(ReportBucket.values)}")
        if status_filter not in StatusFilter.values:
            raise ValidationError(f"status_filter must be one of: {', '.join(StatusFilter.values)}")

    def _orders(self, seller_id: int, start, end) -> QuerySet[Order]:
        return (
            Order.objects.filter(seller_id=seller_id, date_approved__gte=start, date_approved__lt=end)
            .select_related("buyer")
            .prefetch_related("items", "payments")
            .order_by("-date_approved", "-id")
        )

    def _summaries(self, orders: QuerySet[Order], seller_id: int) -> List[OrderSummary]:
        cost_per_order: Dict[str, Decimal] = {}
        summaries = []
        for order in orders:
            year_month = year_month_of(order.date_approved)
            if year_month not in cost_per_order:
                cost_per_order[year_month] = self.flex_costs.get_cost_per_order(seller_id, year_month)
            summaries.append(summarize_order(order, cost_per_order[year_month]))
        return summaries

    def _by_bucket(self, summaries: List[OrderSummary]) -> Dict[str, List[OrderSummary]]:
        buckets: Dict[str, List[OrderSummary]] = {bucket: [] for bucket in ReportBucket.values}
        for summary in summaries:
            buckets[bucket_of(summary.logistic_type)].append(summary)
        return buckets
