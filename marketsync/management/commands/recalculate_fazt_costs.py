from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from marketsync.services.dates import ml_timezone, year_month_of
from marketsync.services.exceptions import ServiceError
from marketsync.services.fazt_impl import FaztCostService
from marketsync.services.platforms import resolve_seller_id


class Command(BaseCommand):
    help = "Recomputes the Fazt courier tier and per-shipment cost of every Flex order in a month."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--seller", type=str, help="Mercado Libre seller id. Defaults to MERCADOLIBRE_SELLER_ID.")
        parser.add_argument("--month", type=str, help="Month to recompute (YYYY-MM). Defaults to the current month.")

    def handle(self, *args, **options) -> None:
        try:
            seller_id = resolve_seller_id(options["seller"])
            year_month = options["month"] or year_month_of(timezone.now().astimezone(ml_timezone()))
            result = FaztCostService().recalculate_monthly_costs(seller_id, year_month)
        except ServiceError as e:
            raise CommandError(str(e))

        self.stdout.write(
            self.style.SUCCESS(
                f"{result.year_month}: {result.shipments_count} shipments, {result.total_updated} payments updated "
                f"at {result.rate_per_shipment} (special zone {result.special_zone_rate})."
            )
        )
