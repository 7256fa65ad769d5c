import logging
from typing import Any, Dict, List, Optional

from django.db import transaction

from marketsync.models import MarketplaceUser, Order, OrderItem, Payment
from marketsync.models.order import COURIER_FLEX_TYPES
from marketsync.services.dates import parse_ml_date
from marketsync.services.fazt_impl import FaztCostService
from marketsync.services.money import ZERO, round_money, to_decimal
from marketsync.services.order_sync_impl.fetcher import EnrichedOrder
from marketsync.services.shipping_impl import MarketplaceFeeExtractor, ShipmentClassification, ShipmentCostClassifier
from marketsync.services.tax import TaxCalculator

logger = logging.getLogger(__name__)


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def pick_thumbnail(item: Dict[str, Any]) -> Optional[str]:
    """First picture found among the thumbnail fields an order item may carry."""
    if item.get("thumbnail"):
        return item["thumbnail"]
    if item.get("secure_thumbnail"):
        return item["secure_thumbnail"]
    pictures = item.get("pictures") or []
    if pictures:
        first = _dict(pictures[0])
        return first.get("url") or first.get("secure_url")
    return None


class OrderPersister:
    """
    Writes one enriched order: buyer and seller, the order itself, its items
    and its payments, all in a single transaction.

    Keyed by marketplace ids, so saving the same order twice leaves the same
    rows behind.
    """

    def __init__(
        self,
        tax: Optional[TaxCalculator] = None,
        classifier: Optional[ShipmentCostClassifier] = None,
        fee_extractor: Optional[MarketplaceFeeExtractor] = None,
        fazt: Optional[FaztCostService] = None,
    ):
        self.tax = tax or TaxCalculator()
        self.classifier = classifier or ShipmentCostClassifier()
        self.fee_extractor = fee_extractor or MarketplaceFeeExtractor()
        self.fazt = fazt or FaztCostService(self.tax)

    def save_order(self, enriched: EnrichedOrder) -> Order:
        payload = enriched.payload
        classification = self.classifier.classify(payload, enriched.shipment, enriched.shipment_costs)

        with transaction.atomic():
            buyer = self._upsert_user(payload.get("buyer"))
            seller = self._upsert_user(payload.get("seller"))
            order = self._upsert_order(payload, buyer, seller, classification)
            self._replace_items(order, payload.get("order_items") or [])
            self._upsert_payments(order, self._payments_of(enriched), classification, enriched.billing_info)

        logger.debug(f"Saved order {order.id} ({order.status}, {order.logistic_type}).")
        return order

    def _payments_of(self, enriched: EnrichedOrder) -> List[Dict[str, Any]]:
        # The full order carries complete payment records; search results are a fallback.
        payments = _dict(enriched.details).get("payments")
        if not payments:
            payments = enriched.summary.get("payments")
        return [payment for payment in payments or [] if isinstance(payment, dict) and payment.get("id")]

    def _upsert_user(self, data: Any) -> Optional[MarketplaceUser]:
        data = _dict(data)
        user_id = _int_or_none(data.get("id"))
        if user_id is None:
            return None
        defaults = {field: data[field] for field in ("nickname", "first_name", "last_name") if data.get(field)}
        user, _ = MarketplaceUser.objects.update_or_create(id=user_id, defaults=defaults)
        return user

    def _upsert_order(
        self,
        payload: Dict[str, Any],
        buyer: Optional[MarketplaceUser],
        seller: Optional[MarketplaceUser],
        classification: ShipmentClassification,
    ) -> Order:
        date_created = parse_ml_date(payload.get("date_created"))
        date_closed = parse_ml_date(payload.get("date_closed"))
        shipping = _dict(payload.get("shipping"))
        billing = _dict(_dict(payload.get("buyer")).get("billing_info"))

        defaults = {
            "date_created": date_created,
            "date_approved": date_closed or date_created,
            "last_updated": parse_ml_date(payload.get("last_updated")),
            "date_closed": date_closed,
            "expiration_date": parse_ml_date(payload.get("expiration_date")),
            "status": payload.get("status") or "",
            "total_amount": round_money(to_decimal(payload.get("total_amount"))),
            "paid_amount": round_money(to_decimal(payload.get("paid_amount"))),
            "currency_id": payload.get("currency_id") or "",
            "buyer": buyer,
            "seller": seller,
            "pack_id": _int_or_none(payload.get("pack_id")),
            "shipping_id": _int_or_none(shipping.get("id")),
            "shipment_status": classification.shipment_status,
            "receiver_name": classification.receiver_name,
            "receiver_phone": classification.receiver_phone,
            "receiver_city_id": classification.receiver_city_id,
            "fulfilled": payload.get("fulfilled"),
            "tags": payload.get("tags") or [],
        }
        if billing.get("doc_number"):
            defaults["receiver_rut"] = billing["doc_number"]
        # A failed shipment fetch must not erase a type learned on an earlier sync.
        if classification.logistic_type:
            defaults["logistic_type"] = classification.logistic_type

        order, created = Order.objects.update_or_create(id=payload["id"], defaults=defaults)
        if created:
            logger.info(f"New order {order.id} from seller {order.seller_id}.")
        return order

    def _replace_items(self, order: Order, items: List[Dict[str, Any]]) -> None:
        order.items.all().delete()
        rows = []
        for entry in items:
            entry = _dict(entry)
            item = _dict(entry.get("item"))
            rows.append(
                OrderItem(
                    order=order,
                    item_id=str(item.get("id") or ""),
                    variation_id=_int_or_none(item.get("variation_id")),
                    title=(item.get("title") or "")[:500],
                    category_id=item.get("category_id"),
                    quantity=int(entry.get("quantity") or 1),
                    unit_price=round_money(to_decimal(entry.get("unit_price"))),
                    full_unit_price=round_money(to_decimal(entry.get("full_unit_price"))) if entry.get("full_unit_price") is not None else None,
                    currency_id=entry.get("currency_id") or "",
                    condition=item.get("condition"),
                    warranty=item.get("warranty"),
                    seller_sku=item.get("seller_sku") or item.get("seller_custom_field"),
                    thumbnail=pick_thumbnail(item),
                )
            )
        OrderItem.objects.bulk_create(rows)

    def _upsert_payments(
        self,
        order: Order,
        payments: List[Dict[str, Any]],
        classification: ShipmentClassification,
        billing_info: Optional[Dict[str, Any]],
    ) -> None:
        is_special_zone = False
        if classification.logistic_type in COURIER_FLEX_TYPES and order.seller_id:
            is_special_zone = self.fazt.is_special_zone(order.seller_id, classification.receiver_city_id)

        billed_fee = self.fee_extractor.extract(billing_info)
        for index, payment in enumerate(payments):
            # Order-level charges are booked once, on the first payment.
            primary = index == 0
            transaction_amount = round_money(to_decimal(payment.get("transaction_amount")))
            fee = to_decimal(payment.get("marketplace_fee"))
            if fee <= 0 and primary:
                fee = billed_fee

            defaults = {
                "order": order,
                "payment_method_id": payment.get("payment_method_id"),
                "payment_type": payment.get("payment_type"),
                "status": payment.get("status") or "",
                "transaction_amount": transaction_amount,
                "total_paid_amount": round_money(to_decimal(payment.get("total_paid_amount"), default=transaction_amount)),
                "iva_amount": self.tax.extract_iva(transaction_amount),
                "marketplace_fee": round_money(fee),
                "shipping_cost": classification.payment_shipping_cost(payment.get("shipping_cost")) if primary else ZERO,
                "shipping_bonus": classification.shipping_bonus if primary else ZERO,
                "courier_cost": classification.courier_cost if primary else ZERO,
                "fazt_is_special_zone": is_special_zone,
                "currency_id": payment.get("currency_id") or "",
                "date_approved": parse_ml_date(payment.get("date_approved")),
            }
            Payment.objects.update_or_create(id=payment["id"], defaults=defaults)
