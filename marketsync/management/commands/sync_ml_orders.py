import logging
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from marketsync.services.dates import ml_timezone, parse_day
from marketsync.services.exceptions import AuthExpiredError, ServiceError
from marketsync.services.order_sync_impl import OrderSyncError, OrderSyncOrchestrator
from marketsync.services.platforms import resolve_seller_id

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """
    Pulls a seller's Mercado Libre orders into the local database.

    Without a window option it syncs today (in the marketplace's UTC-4 day).
    ``--status-changes`` revisits orders updated in the last ``--days`` days
    instead, picking up cancellations and refunds.
    """

    help = "Syncs Mercado Libre orders for a day, a date range or a month."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--seller", type=str, help="Mercado Libre seller id. Defaults to MERCADOLIBRE_SELLER_ID.")
        window = parser.add_mutually_exclusive_group()
        window.add_argument("--date", type=str, help="Single day to sync (YYYY-MM-DD).")
        window.add_argument("--from", dest="from_date", type=str, help="First day of a range (YYYY-MM-DD). Requires --to.")
        window.add_argument("--month", type=str, help="Month to sync (YYYY-MM).")
        window.add_argument(
            "--status-changes",
            action="store_true",
            help="Resync orders updated recently instead of orders created in a window.",
        )
        parser.add_argument("--to", dest="to_date", type=str, help="Last day of a range (YYYY-MM-DD).")
        parser.add_argument("--days", type=int, default=2, help="Lookback for --status-changes. Defaults to 2.")

    def handle(self, *args, **options) -> None:
        orchestrator = OrderSyncOrchestrator()
        try:
            seller_id = resolve_seller_id(options["seller"])
            if options["to_date"] and not options["from_date"]:
                raise CommandError("--to requires --from.")

            if options["status_changes"]:
                to_date = timezone.now().astimezone(ml_timezone()).date()
                from_date = to_date - timedelta(days=max(options["days"], 1) - 1)
                self.stdout.write(f"Syncing status changes for seller {seller_id} from {from_date} to {to_date}...")
                result = orchestrator.sync_status_changes(seller_id, from_date, to_date)
                self._report_day(result)
            elif options["month"]:
                self.stdout.write(f"Syncing month {options['month']} for seller {seller_id}...")
                self._report_range(orchestrator.sync_month(seller_id, options["month"]))
            elif options["from_date"]:
                from_date = parse_day(options["from_date"])
                to_date = parse_day(options["to_date"]) if options["to_date"] else from_date
                self.stdout.write(f"Syncing {from_date} to {to_date} for seller {seller_id}...")
                self._report_range(orchestrator.sync_range(seller_id, from_date, to_date))
            else:
                day = parse_day(options["date"]) if options["date"] else timezone.now().astimezone(ml_timezone()).date()
                self.stdout.write(f"Syncing {day} for seller {seller_id}...")
                self._report_day(orchestrator.sync_date(seller_id, day))
        except (OrderSyncError, AuthExpiredError) as e:
            raise CommandError(OrderSyncError.from_exception(e).message)
        except ServiceError as e:
            raise CommandError(str(e))

    def _report_day(self, result) -> None:
        self.stdout.write(self.style.SUCCESS(f"Synced {result.synced} orders ({result.failed} failed)."))
        if result.failed_order_ids:
            self.stdout.write(self.style.WARNING(f"Failed orders: {', '.join(str(i) for i in result.failed_order_ids)}"))
        if result.fazt_tier is not None:
            self.stdout.write(
                f"Fazt {result.fazt_tier.year_month}: {result.fazt_tier.shipments_count} shipments "
                f"at {result.fazt_tier.rate_per_shipment} per shipment."
            )

    def _report_range(self, result) -> None:
        self.stdout.write(self.style.SUCCESS(f"Synced {result.synced} orders over {len(result.days)} days ({result.failed} failed)."))
        for day in result.days:
            if day.error:
                self.stdout.write(self.style.ERROR(f"Day {day.date} failed: {day.error}"))
