import json
import logging

from django.core.management.base import BaseCommand, CommandError

from marketsync.models import Platform
from marketsync.services.exceptions import ConfigurationError, ServiceError
from marketsync.services.platforms import resolve_seller_id
from marketsync.services.stock_deduction_impl import StockDeductionService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """
    Retries the inventory deduction of an order whose lines were not found.

    Lines already deducted are left alone; only NOT_FOUND lines are retried,
    which picks up mappings created since the original attempt.
    """

    help = "Reprocesses the stock deduction of a marketplace order."

    def add_arguments(self, parser) -> None:
        parser.add_argument("order_id", type=str, help="Marketplace order id.")
        parser.add_argument(
            "--platform",
            type=str,
            default=Platform.MERCADOLIBRE,
            choices=[Platform.MERCADOLIBRE, Platform.FALABELLA],
            help="Platform the order belongs to. Defaults to mercadolibre.",
        )
        parser.add_argument("--seller", type=str, help="Mercado Libre seller id. Defaults to MERCADOLIBRE_SELLER_ID.")
        parser.add_argument("--payload-file", type=str, help="JSON file with the order notification. Required for Falabella.")

    def handle(self, *args, **options) -> None:
        order_id = options["order_id"]
        platform = options["platform"]
        try:
            seller_id = self._seller(options["seller"]) if platform == Platform.MERCADOLIBRE else None
            payload = self._load_payload(options["payload_file"])
            result = StockDeductionService().reprocess_order(platform, order_id, seller_id=seller_id, payload=payload)
        except ServiceError as e:
            logger.error(f"Reprocessing {platform} order {order_id} failed: {e}")
            raise CommandError(str(e))

        style = self.style.WARNING if result.status == "partial" else self.style.SUCCESS
        self.stdout.write(style(f"Order {order_id} on {platform}: {result.status}"))
        for line in result.items:
            self.stdout.write(f"  {line.sku}: {line.status} {line.message}".rstrip())

    def _seller(self, value):
        # Orders already synced locally can be reprocessed without a seller.
        try:
            return resolve_seller_id(value)
        except ConfigurationError:
            return None

    def _load_payload(self, path):
        if not path:
            return None
        try:
            with open(path, encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError) as e:
            raise CommandError(f"Could not read payload file {path}: {e}")
