from .notifications import process_falabella_notification, process_mercadolibre_notification
from .orders import sync_orders_for_date, sync_orders_for_month, sync_recent_status_changes
from .periodic import run_sync_ml_orders, run_sync_ml_status_changes

__all__ = (
    "process_falabella_notification",
    "process_mercadolibre_notification",
    "run_sync_ml_orders",
    "run_sync_ml_status_changes",
    "sync_orders_for_date",
    "sync_orders_for_month",
    "sync_recent_status_changes",
)
