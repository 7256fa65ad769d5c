import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from django.db import transaction
from django.utils import timezone
from pydantic import ValidationError as PydanticValidationError

from marketsync.models import LogisticType, Order, PendingSale, Platform, Product, ProductAudit, ProductHistory
from marketsync.services.dates import parse_ml_date
from marketsync.services.exceptions import NotFoundError, UpstreamUnavailableError, ValidationError
from marketsync.services.inventory_impl import InventoryLedger, ProductResolver, ResolvedProduct, StockChangeMetadata
from marketsync.services.mercadolibre_impl.orders_api import MercadoLibreOrdersAPI, RefreshBudget
from marketsync.services.pending_sales_impl import PendingSaleService
from marketsync.services.platforms import get_platform
from marketsync.services.stock_deduction_impl.audit import AuditRecorder
from marketsync.services.stock_deduction_impl.schemas import FalabellaNotification

logger = logging.getLogger(__name__)

ML_DEDUCTIBLE_STATUSES = frozenset({Order.Status.PAID.value})
CANCELLED_STATUSES = frozenset({"cancelled", "canceled"})
FALABELLA_LOGISTIC_TYPE = "falabella_standard"

NOT_FOUND_MESSAGE = "SKU not found in inventory"


@dataclass
class SaleLine:
    """One sold line, reduced to what inventory resolution needs."""

    sku: str
    quantity: int
    alt_sku: Optional[str] = None
    listing_id: Optional[str] = None
    variation_id: Optional[int] = None
    title: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def reference(self) -> str:
        return self.sku or self.alt_sku or self.listing_id or ""


@dataclass
class LineOutcome:
    sku: str
    status: str
    message: str = ""
    product_ids: List[int] = field(default_factory=list)


@dataclass
class DeductionResult:
    """
    ``status`` is one of processed, partial, already_processed, cancelled or
    skipped.
    """

    order_id: str
    platform: str
    status: str
    message: str = ""
    items: List[LineOutcome] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "platform": self.platform,
            "status": self.status,
            "message": self.message,
            "items": [{"sku": i.sku, "status": i.status, "message": i.message, "product_ids": i.product_ids} for i in self.items],
        }


class StockDeductionService:
    """
    Deducts local stock for marketplace sales exactly once per order.

    The audit trail is the only de-duplication key: an order with any
    ProductAudit row for its platform is never deducted again. Processing
    holds a row lock on the platform so two deliveries of the same
    notification cannot both pass that check.
    """

    def __init__(
        self,
        ledger: Optional[InventoryLedger] = None,
        resolver: Optional[ProductResolver] = None,
        pending_sales: Optional[PendingSaleService] = None,
        audits: Optional[AuditRecorder] = None,
        api_factory: Optional[Callable[[int], MercadoLibreOrdersAPI]] = None,
    ):
        self.ledger = ledger or InventoryLedger()
        self.resolver = resolver or ProductResolver()
        self.pending_sales = pending_sales or PendingSaleService(ledger=self.ledger)
        self.audits = audits or AuditRecorder()
        self.api_factory = api_factory or MercadoLibreOrdersAPI.for_seller

    # --- Mercado Libre -----------------------------------------------------

    def process_mercadolibre_order(self, seller_id: int, order_id: int, order_payload: Optional[Dict[str, Any]] = None) -> DeductionResult:
        """Handles an ``orders_v2`` notification. The order is fetched unless a payload is given."""
        payload = order_payload or self._fetch_ml_order(seller_id, order_id)
        platform = get_platform(Platform.MERCADOLIBRE)
        status = payload.get("status") or ""
        order_ref = str(order_id)

        if status in CANCELLED_STATUSES:
            return self.restore_cancelled_order(platform, order_ref)
        if status not in ML_DEDUCTIBLE_STATUSES:
            logger.info(f"Mercado Libre order {order_ref} is {status or 'without status'}; nothing to deduct yet.")
            return DeductionResult(order_ref, platform.code, "skipped", f"Order status is {status}")

        return self._process(
            platform,
            order_ref,
            self._ml_lines(payload),
            logistic_type=self._ml_logistic_type(payload),
            sale_date=parse_ml_date(payload.get("date_closed") or payload.get("date_created")),
            resolve=self._resolve_ml_line,
        )

    def _fetch_ml_order(self, seller_id: int, order_id: int) -> Dict[str, Any]:
        api = self.api_factory(seller_id)
        budget = RefreshBudget()
        try:
            payload = api.get_order_details(order_id, budget=budget)
        except UpstreamUnavailableError as e:
            # Without the order there is nothing to deduct; the notification is retried upstream.
            raise NotFoundError("Order", order_id, details={"cause": str(e)}) from e

        shipping_id = (payload.get("shipping") or {}).get("id")
        if shipping_id:
            shipment = api.fetch_optional(api.get_shipment_by_id, shipping_id, budget=budget)
            if shipment and shipment.get("logistic_type"):
                payload.setdefault("shipping", {})["logistic_type"] = shipment["logistic_type"]
        return payload

    def _ml_logistic_type(self, payload: Dict[str, Any]) -> Optional[str]:
        logistic_type = (payload.get("shipping") or {}).get("logistic_type")
        if logistic_type:
            return logistic_type
        return Order.objects.filter(pk=payload.get("id")).values_list("logistic_type", flat=True).first()

    def _ml_lines(self, payload: Dict[str, Any]) -> List[SaleLine]:
        lines = []
        for entry in payload.get("order_items") or []:
            item = entry.get("item") or {}
            lines.append(
                SaleLine(
                    sku=item.get("seller_sku") or item.get("seller_custom_field") or "",
                    quantity=int(entry.get("quantity") or 1),
                    listing_id=item.get("id"),
                    variation_id=item.get("variation_id"),
                    title=item.get("title") or "",
                    raw=entry,
                )
            )
        return lines

    def _resolve_ml_line(self, platform: Platform, line: SaleLine) -> List[ResolvedProduct]:
        """Platform SKU mapping, then the listing (and variation) binding, then the internal SKU."""
        resolved = self.resolver.find_mapped_products(platform.id, line.sku)
        if resolved:
            return resolved
        product = self.resolver.find_product_by_listing(platform.id, line.listing_id, line.variation_id)
        if product:
            return [ResolvedProduct(product=product, via="listing")]
        return self.resolver.find_products_by_sku(platform.id, line.sku)

    # --- Falabella ---------------------------------------------------------

    def process_falabella_notification(self, payload: Dict[str, Any]) -> DeductionResult:
        notification = self._parse_falabella(payload)
        platform = get_platform(Platform.FALABELLA)

        if notification.status.lower() in CANCELLED_STATUSES:
            return self.restore_cancelled_order(platform, notification.order_id)

        return self._process(
            platform,
            notification.order_id,
            self._falabella_lines(notification),
            logistic_type=FALABELLA_LOGISTIC_TYPE,
            sale_date=notification.sale_date,
            resolve=self._resolve_falabella_line,
        )

    def _parse_falabella(self, payload: Dict[str, Any]) -> FalabellaNotification:
        try:
            return FalabellaNotification.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError("Invalid Falabella notification", details={"errors": e.errors(include_url=False)}) from e

    def _falabella_lines(self, notification: FalabellaNotification) -> List[SaleLine]:
        return [
            SaleLine(
                sku=item.sku,
                alt_sku=item.shop_sku,
                quantity=item.quantity,
                title=item.name,
                raw={**item.model_dump(mode="json"), "order_id": notification.order_id},
            )
            for item in notification.items
        ]

    def _resolve_falabella_line(self, platform: Platform, line: SaleLine) -> List[ResolvedProduct]:
        """Seller SKU first, then the shop SKU; each tries mappings before the internal SKU."""
        resolved = self.resolver.find_products_by_sku(platform.id, line.sku)
        if not resolved and line.alt_sku:
            resolved = self.resolver.find_products_by_sku(platform.id, line.alt_sku)
        return resolved

    # --- shared ------------------------------------------------------------

    def _process(
        self,
        platform: Platform,
        order_ref: str,
        lines: List[SaleLine],
        logistic_type: Optional[str],
        sale_date: Optional[datetime],
        resolve: Callable[[Platform, SaleLine], List[ResolvedProduct]],
        retry_not_found: bool = False,
    ) -> DeductionResult:
        with transaction.atomic():
            Platform.objects.select_for_update().get(pk=platform.pk)
            skip_refs: set = set()
            if retry_not_found:
                skip_refs = self._prepare_retry(platform, order_ref)
                if skip_refs is None:
                    return DeductionResult(order_ref, platform.code, "already_processed", "No failed lines to retry")
            elif self.audits.is_processed(order_ref, platform.code):
                logger.info(f"{platform.name} order {order_ref} already processed, skipping.")
                return DeductionResult(order_ref, platform.code, "already_processed", "Order already processed")

            result = DeductionResult(order_ref, platform.code, "processed")
            for line in lines:
                if line.reference in skip_refs:
                    continue
                if logistic_type == LogisticType.FULFILLMENT:
                    self.audits.record(order_ref, platform.code, ProductAudit.Status.OK_FULL, secondary_sku=line.reference, logistic_type=logistic_type)
                    result.items.append(LineOutcome(line.reference, ProductAudit.Status.OK_FULL, "Fulfilled from the marketplace warehouse"))
                    continue
                result.items.append(self._deduct_line(platform, order_ref, line, logistic_type, sale_date, resolve))

        if any(item.status == ProductAudit.Status.NOT_FOUND for item in result.items):
            result.status = "partial"
            result.message = "Some lines could not be deducted"
        logger.info(f"{platform.name} order {order_ref}: {result.status} ({len(result.items)} lines).")
        return result

    def _deduct_line(
        self,
        platform: Platform,
        order_ref: str,
        line: SaleLine,
        logistic_type: Optional[str],
        sale_date: Optional[datetime],
        resolve: Callable[[Platform, SaleLine], List[ResolvedProduct]],
    ) -> LineOutcome:
        targets = resolve(platform, line)
        if not targets:
            self.pending_sales.create(
                platform_id=platform.id,
                platform_order_id=order_ref,
                platform_sku=line.reference,
                quantity=line.quantity,
                sale_date=sale_date or timezone.now(),
                raw_data={"item": line.raw, "order_id": order_ref},
            )
            self.audits.record(
                order_ref, platform.code, ProductAudit.Status.NOT_FOUND, secondary_sku=line.reference, logistic_type=logistic_type, error_message=NOT_FOUND_MESSAGE
            )
            return LineOutcome(line.reference, ProductAudit.Status.NOT_FOUND, NOT_FOUND_MESSAGE)

        for target in targets:
            units = line.quantity * target.multiplier
            if not self.ledger.validate_stock_availability(target.product.id, units):
                message = f"Insufficient stock to deduct {units} units of {target.product.internal_sku}"
                self.audits.record(
                    order_ref,
                    platform.code,
                    ProductAudit.Status.NOT_FOUND,
                    internal_sku=target.product.internal_sku,
                    secondary_sku=line.reference,
                    logistic_type=logistic_type,
                    error_message=message,
                )
                return LineOutcome(line.reference, ProductAudit.Status.NOT_FOUND, message)

        for target in targets:
            units = line.quantity * target.multiplier
            self.ledger.deduct_stock(
                target.product.id,
                units,
                StockChangeMetadata(
                    change_type=ProductHistory.ChangeType.ORDER,
                    changed_by=f"{platform.name} notification",
                    change_reason=f"Sale on {platform.name} order #{order_ref}",
                    platform_id=platform.id,
                    platform_order_id=order_ref,
                    extra={"sku": line.reference, "resolved_via": target.via, "multiplier": target.multiplier},
                ),
            )
            self.audits.record(
                order_ref,
                platform.code,
                ProductAudit.Status.OK_INTERNO,
                internal_sku=target.product.internal_sku,
                secondary_sku=line.reference,
                logistic_type=logistic_type,
                quantity=units,
            )
        return LineOutcome(line.reference, ProductAudit.Status.OK_INTERNO, "Stock deducted", [t.product.id for t in targets])

    def restore_cancelled_order(self, platform: Platform, order_ref: str) -> DeductionResult:
        """
        Gives back the stock of a cancelled order. Runs once: only when the
        order was deducted and no CANCELLED row exists yet.
        """
        with transaction.atomic():
            Platform.objects.select_for_update().get(pk=platform.pk)
            audits = self.audits.for_order(order_ref, platform.code)
            if audits.filter(status=ProductAudit.Status.CANCELLED).exists():
                return DeductionResult(order_ref, platform.code, "already_processed", "Cancellation already applied")

            deducted = list(audits.filter(status=ProductAudit.Status.OK_INTERNO))
            if not deducted:
                logger.info(f"{platform.name} order {order_ref} cancelled before any deduction.")
                return DeductionResult(order_ref, platform.code, "skipped", "Nothing was deducted for this order")

            result = DeductionResult(order_ref, platform.code, "cancelled", "Stock restored")
            for audit in deducted:
                product = Product.objects.filter(internal_sku=audit.internal_sku).first()
                if product is None:
                    result.items.append(LineOutcome(audit.secondary_sku or "", ProductAudit.Status.NOT_FOUND, f"Product {audit.internal_sku} no longer exists"))
                    continue
                self.ledger.restore_stock(
                    product.id,
                    audit.quantity_discounted,
                    StockChangeMetadata(
                        change_type=ProductHistory.ChangeType.ORDER,
                        changed_by=f"{platform.name} notification",
                        change_reason=f"Cancelled {platform.name} order #{order_ref}",
                        platform_id=platform.id,
                        platform_order_id=order_ref,
                    ),
                )
                self.audits.record(
                    order_ref,
                    platform.code,
                    ProductAudit.Status.CANCELLED,
                    internal_sku=audit.internal_sku,
                    secondary_sku=audit.secondary_sku,
                    logistic_type=audit.logistic_type,
                    quantity=audit.quantity_discounted,
                )
                result.items.append(LineOutcome(audit.secondary_sku or "", ProductAudit.Status.CANCELLED, "Stock restored", [product.id]))

        logger.info(f"{platform.name} order {order_ref} cancelled: {len(result.items)} lines restored.")
        return result

    # --- reprocessing ------------------------------------------------------

    def reprocess_order(
        self,
        platform_code: str,
        order_id: str,
        seller_id: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> DeductionResult:
        """
        Runs deduction again for an order. Lines that already succeeded are
        left alone; lines that failed (NOT_FOUND) are retried. An order with
        no failed lines reports ``already_processed``.
        """
        platform = get_platform(platform_code)
        order_ref = str(order_id)

        if platform.code == Platform.MERCADOLIBRE:
            lines, logistic_type, sale_date = self._ml_reprocess_source(seller_id, order_ref, payload)
            resolve = self._resolve_ml_line
        elif platform.code == Platform.FALABELLA:
            if not payload:
                raise ValidationError("Reprocessing a Falabella order needs its notification payload")
            notification = self._parse_falabella(payload)
            lines, logistic_type, sale_date = self._falabella_lines(notification), FALABELLA_LOGISTIC_TYPE, notification.sale_date
            resolve = self._resolve_falabella_line
        else:
            raise ValidationError(f"Unsupported platform '{platform_code}'")

        return self._process(platform, order_ref, lines, logistic_type, sale_date, resolve, retry_not_found=True)

    def _ml_reprocess_source(self, seller_id: Optional[int], order_ref: str, payload: Optional[Dict[str, Any]]):
        order = Order.objects.prefetch_related("items").filter(pk=order_ref).first() if order_ref.isdigit() else None
        if payload is None and order is not None:
            lines = [
                SaleLine(
                    sku=item.seller_sku or "",
                    quantity=item.quantity,
                    listing_id=item.item_id,
                    variation_id=item.variation_id,
                    title=item.title,
                    raw={"item_id": item.item_id, "seller_sku": item.seller_sku, "quantity": item.quantity},
                )
                for item in order.items.all()
            ]
            return lines, order.logistic_type, order.date_approved

        if payload is None:
            if seller_id is None:
                raise NotFoundError("Order", order_ref)
            payload = self._fetch_ml_order(seller_id, int(order_ref))
        return self._ml_lines(payload), self._ml_logistic_type(payload), parse_ml_date(payload.get("date_closed") or payload.get("date_created"))

    def _prepare_retry(self, platform: Platform, order_ref: str) -> Optional[set]:
        """
        Clears the failed audit rows of an order and returns the references of
        lines that must not be deducted again. None means there is nothing to
        retry.

        A line whose pending sale an operator already mapped or ignored is
        settled: resolving a pending sale deducts stock itself.
        """
        audits = self.audits.for_order(order_ref, platform.code)
        if not audits.exists():
            return set()
        settled = set(
            PendingSale.objects.filter(
                platform=platform,
                platform_order_id=order_ref,
                status__in=[PendingSale.Status.MAPPED, PendingSale.Status.IGNORED],
            ).values_list("platform_sku", flat=True)
        )
        failed = audits.filter(status=ProductAudit.Status.NOT_FOUND).exclude(secondary_sku__in=settled)
        if not failed.exists():
            return None
        done = set(audits.exclude(status=ProductAudit.Status.NOT_FOUND).values_list("secondary_sku", flat=True)) | settled
        failed.delete()
        return done
