"""Celery tasks that turn marketplace notifications into stock movements."""

import logging
import re
from typing import Optional

from celery import shared_task

from marketsync.services.exceptions import NotFoundError
from marketsync.services.stock_deduction_impl import StockDeductionService

logger = logging.getLogger(__name__)

ORDER_RESOURCE = re.compile(r"/orders/(\d+)")
ORDER_TOPICS = {"orders_v2", "orders"}


def order_id_from_resource(resource: Optional[str]) -> Optional[int]:
    match = ORDER_RESOURCE.search(resource or "")
    return int(match.group(1)) if match else None


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def process_mercadolibre_notification(self, payload: dict) -> dict:
    """
    Handles a Mercado Libre webhook delivery.

    Only order topics move stock. When the order cannot be fetched yet, the
    task retries up to 3 times with a 60-second delay.
    """
    topic = payload.get("topic")
    order_id = order_id_from_resource(payload.get("resource"))
    seller_id = payload.get("user_id")
    if topic not in ORDER_TOPICS or order_id is None or seller_id is None:
        logger.info(f"Ignoring Mercado Libre notification {topic} for {payload.get('resource')}.")
        return {"status": "ignored", "topic": topic}

    try:
        result = StockDeductionService().process_mercadolibre_order(int(seller_id), order_id)
    except NotFoundError as e:
        if self.request.retries < self.max_retries:
            logger.warning(f"Order {order_id} not available yet, retrying... (attempt {self.request.retries + 1}/{self.max_retries})")
            raise self.retry(exc=e)
        logger.error(f"Giving up on Mercado Libre order {order_id}: {e}")
        raise
    return result.as_dict()


@shared_task
def process_falabella_notification(payload: dict) -> dict:
    """Handles a Falabella order notification."""
    return StockDeductionService().process_falabella_notification(payload).as_dict()
