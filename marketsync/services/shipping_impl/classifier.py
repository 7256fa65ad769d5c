import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from marketsync.models import LogisticType
from marketsync.models.order import FLEX_INCOME_TYPES
from marketsync.services.money import ZERO, round_money, to_decimal

logger = logging.getLogger(__name__)


@dataclass
class ShipmentClassification:
    """
    Shipping economics of one order.

    ``shipping_cost`` is what the marketplace charges the seller,
    ``shipping_income`` what the buyer pays the seller for Flex delivery,
    ``shipping_bonus`` the marketplace subsidy on free-shipping Flex orders and
    ``courier_cost`` what the seller pays its own courier on those orders.
    """

    logistic_type: Optional[str] = None
    shipping_cost: Decimal = ZERO
    shipping_income: Decimal = ZERO
    shipping_bonus: Decimal = ZERO
    courier_cost: Decimal = ZERO
    shipment_status: Optional[str] = None
    receiver_name: Optional[str] = None
    receiver_phone: Optional[str] = None
    receiver_city_id: Optional[str] = None

    def payment_shipping_cost(self, upstream_value: Any = None) -> Decimal:
        """
        Value stored in ``Payment.shipping_cost``: zero on free-shipping Flex,
        the income on Flex, the seller charge otherwise, and the upstream
        payment figure only when nothing better is known.
        """
        if self.courier_cost > 0:
            return ZERO
        if self.shipping_income > 0:
            return self.shipping_income
        if self.logistic_type == LogisticType.FULFILLMENT:
            return self.shipping_cost
        if self.shipping_cost > 0:
            return self.shipping_cost
        return round_money(to_decimal(upstream_value))


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first_sender(shipment_costs: dict[str, Any]) -> dict[str, Any]:
    senders = shipment_costs.get("senders") or []
    return _dict(senders[0]) if senders else {}


class ShipmentCostClassifier:
    """
    Turns the order, shipment and shipment-cost payloads into a
    ShipmentClassification.

    Any payload may be missing (failed fetch, cancelled order whose shipment
    vanished); absent amounts count as zero so the order is still saved.
    """

    def classify(
        self,
        order_payload: Optional[dict[str, Any]],
        shipment: Optional[dict[str, Any]] = None,
        shipment_costs: Optional[dict[str, Any]] = None,
    ) -> ShipmentClassification:
        order_payload = _dict(order_payload)
        shipment = _dict(shipment)
        shipment_costs = _dict(shipment_costs)

        result = ShipmentClassification(
            logistic_type=shipment.get("logistic_type") or _dict(order_payload.get("shipping")).get("logistic_type") or None,
            shipment_status=shipment.get("status"),
        )
        self._fill_receiver(result, shipment)

        receiver_cost = to_decimal(_dict(shipment_costs.get("receiver")).get("cost"))
        sender = _first_sender(shipment_costs)
        sender_cost = to_decimal(sender.get("cost"))

        if result.logistic_type in FLEX_INCOME_TYPES:
            self._classify_flex(result, shipment, shipment_costs, receiver_cost, sender, sender_cost)
        elif result.logistic_type == LogisticType.FULFILLMENT:
            # What the marketplace charges the seller, never what the buyer paid.
            result.shipping_cost = round_money(sender_cost)
        elif result.logistic_type:
            list_cost = _dict(shipment.get("shipping_option")).get("list_cost")
            # Drop-off charges are already net of any "you saved" discount.
            result.shipping_cost = round_money(to_decimal(list_cost, default=sender_cost))

        logger.debug(
            f"Order {order_payload.get('id')}: logistic_type={result.logistic_type}, cost={result.shipping_cost}, "
            f"income={result.shipping_income}, bonus={result.shipping_bonus}, courier={result.courier_cost}"
        )
        return result

    def _classify_flex(
        self,
        result: ShipmentClassification,
        shipment: dict[str, Any],
        shipment_costs: dict[str, Any],
        receiver_cost: Decimal,
        sender: dict[str, Any],
        sender_cost: Decimal,
    ) -> None:
        if shipment_costs and receiver_cost == 0 and sender_cost > 0:
            # Free-shipping promotion: the buyer pays nothing, the seller pays
            # the courier and the marketplace refunds part of it as a bonus.
            result.logistic_type = f"{result.logistic_type}_cost"
            result.shipping_cost = ZERO
            result.courier_cost = round_money(sender_cost)
            discounts = sender.get("discounts") or []
            result.shipping_bonus = round_money(sum((to_decimal(_dict(d).get("promoted_amount")) for d in discounts), ZERO))
            return

        gross_amount = shipment_costs.get("gross_amount")
        if gross_amount is None:
            gross_amount = shipment.get("base_cost")
        result.shipping_income = round_money(to_decimal(gross_amount))

    def _fill_receiver(self, result: ShipmentClassification, shipment: dict[str, Any]) -> None:
        address = _dict(shipment.get("receiver_address"))
        result.receiver_name = address.get("receiver_name")
        result.receiver_phone = address.get("receiver_phone")
        city_id = _dict(address.get("city")).get("id")
        result.receiver_city_id = str(city_id) if city_id else None
