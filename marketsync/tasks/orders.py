"""Celery tasks that pull Mercado Libre orders into the local database."""

import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

from marketsync.services.dates import ml_timezone, parse_day
from marketsync.services.order_sync_impl import OrderSyncError, OrderSyncOrchestrator

logger = logging.getLogger(__name__)


@shared_task
def sync_orders_for_date(seller_id: int, day: str) -> dict:
    """Syncs the orders a seller received on one day (``YYYY-MM-DD``)."""
    try:
        result = OrderSyncOrchestrator().sync_date(int(seller_id), parse_day(day))
    except OrderSyncError:
        raise
    except Exception as e:
        logger.error(f"Order sync of {day} for seller {seller_id} failed: {e}", exc_info=True)
        raise OrderSyncError.from_exception(e) from e
    return result.as_dict()


@shared_task
def sync_orders_for_month(seller_id: int, year_month: str) -> dict:
    """Syncs every elapsed day of a month (``YYYY-MM``) and recomputes its courier tier once."""
    try:
        result = OrderSyncOrchestrator().sync_month(int(seller_id), year_month)
    except OrderSyncError:
        raise
    except Exception as e:
        logger.error(f"Order sync of {year_month} for seller {seller_id} failed: {e}", exc_info=True)
        raise OrderSyncError.from_exception(e) from e
    return result.as_dict()


@shared_task
def sync_recent_status_changes(seller_id: int, days: int = 2) -> dict:
    """Revisits orders updated during the last ``days`` days to pick up cancellations and refunds."""
    to_date = timezone.now().astimezone(ml_timezone()).date()
    from_date = to_date - timedelta(days=max(int(days), 1) - 1)
    try:
        result = OrderSyncOrchestrator().sync_status_changes(int(seller_id), from_date, to_date)
    except OrderSyncError:
        raise
    except Exception as e:
        logger.error(f"Status-change sync for seller {seller_id} failed: {e}", exc_info=True)
        raise OrderSyncError.from_exception(e) from e
    return result.as_dict()
