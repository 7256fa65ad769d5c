from .exceptions import OrderSyncError
from .fetcher import EnrichedOrder, OrderEnricher, OrderFetcher
from .orchestrator import OrderSyncOrchestrator, RangeSyncResult, SyncResult
from .persister import OrderPersister

__all__ = [
    "EnrichedOrder",
    "OrderEnricher",
    "OrderFetcher",
    "OrderPersister",
    "OrderSyncError",
    "OrderSyncOrchestrator",
    "RangeSyncResult",
    "SyncResult",
]
