from .aggregator import MAX_PAGE_SIZE, SalesAggregator
from .packs import group_into_packs
from .schemas import DailySalesReport, OrderSummary, PackGroup, RangeSalesReport
from .summary import ReportBucket, StatusFilter, cancellation_type, summarize_order

__all__ = [
    "MAX_PAGE_SIZE",
    "DailySalesReport",
    "OrderSummary",
    "PackGroup",
    "RangeSalesReport",
    "ReportBucket",
    "SalesAggregator",
    "StatusFilter",
    "cancellation_type",
    "group_into_packs",
    "summarize_order",
]
