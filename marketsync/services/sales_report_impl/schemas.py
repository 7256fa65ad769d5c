from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

CancellationType = Literal["cancelled", "in_mediation", "refunded"]

ZERO = Decimal("0")


class OrderItemSummary(BaseModel):
    item_id: str
    title: str
    quantity: int
    unit_price: Decimal
    seller_sku: str = ""
    thumbnail: Optional[str] = None


class BuyerSummary(BaseModel):
    id: int
    nickname: str = ""
    first_name: str = ""
    last_name: str = ""
    receiver_name: Optional[str] = None
    receiver_phone: Optional[str] = None
    receiver_rut: Optional[str] = None


class OrderSummary(BaseModel):
    """One order with its reconciled financials."""

    id: int
    date_created: Optional[datetime] = None
    date_approved: Optional[datetime] = None
    status: str
    is_cancelled: bool = False
    cancellation_type: Optional[CancellationType] = None
    shipment_status: Optional[str] = None
    total_amount: Decimal = ZERO
    paid_amount: Decimal = ZERO
    logistic_type: str
    logistic_type_label: str
    pack_id: Optional[int] = None
    items: List[OrderItemSummary] = Field(default_factory=list)
    shipping_cost: Decimal = Field(ZERO, description="Marketplace shipping charge, or Flex shipping income")
    shipping_income: Decimal = Field(ZERO, description="Shipping the buyer paid the seller on Flex orders")
    courier_cost: Decimal = ZERO
    marketplace_fee: Decimal = ZERO
    iva_amount: Decimal = ZERO
    shipping_bonus: Decimal = ZERO
    flex_shipping_cost: Decimal = Field(ZERO, description="External courier cost booked against the order")
    gross_amount: Decimal = ZERO
    total_fees: Decimal = ZERO
    net_profit: Decimal = ZERO
    profit_margin: Decimal = ZERO
    buyer: Optional[BuyerSummary] = None


class TotalsSummary(BaseModel):
    """
    Totals over a set of orders. ``total_orders`` counts every order;
    amounts only cover the active ones.
    """

    total_orders: int = 0
    active_orders: int = 0
    total_items: int = 0
    gross_amount: Decimal = ZERO
    shipping_cost: Decimal = ZERO
    shipping_income: Decimal = ZERO
    marketplace_fee: Decimal = ZERO
    iva_amount: Decimal = ZERO
    shipping_bonus: Decimal = ZERO
    flex_shipping_cost: Decimal = ZERO
    courier_cost: Decimal = ZERO
    total_fees: Decimal = ZERO
    net_profit: Decimal = ZERO
    average_order_value: Decimal = ZERO
    average_profit_margin: Decimal = ZERO
    cancelled_count: int = 0
    cancelled_amount: Decimal = ZERO
    mediation_count: int = 0
    mediation_amount: Decimal = ZERO
    refunded_count: int = 0
    refunded_amount: Decimal = ZERO


class LogisticTypeSummary(TotalsSummary):
    logistic_type: str
    logistic_type_label: str


class PackGroup(BaseModel):
    """Orders shipped together. Shipping-level amounts are counted once for the whole pack."""

    pack_id: Optional[int] = None
    order_ids: List[int]
    orders: List[OrderSummary]
    logistic_type: str
    logistic_type_label: str
    is_cancelled: bool = False
    gross_amount: Decimal = ZERO
    marketplace_fee: Decimal = ZERO
    iva_amount: Decimal = ZERO
    shipping_cost: Decimal = ZERO
    shipping_income: Decimal = ZERO
    shipping_bonus: Decimal = ZERO
    courier_cost: Decimal = ZERO
    flex_shipping_cost: Decimal = ZERO
    total_fees: Decimal = ZERO
    net_profit: Decimal = ZERO
    profit_margin: Decimal = ZERO


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class DailySalesReport(BaseModel):
    date: date
    seller_id: int
    date_mode: str
    summary: TotalsSummary
    by_logistic_type: Dict[str, LogisticTypeSummary]
    orders: Dict[str, List[OrderSummary]]


class RangeSalesReport(BaseModel):
    from_date: date
    to_date: date
    seller_id: int
    date_mode: str
    summary: TotalsSummary
    by_logistic_type: Dict[str, LogisticTypeSummary]
    orders: List[OrderSummary] = Field(default_factory=list)
    packs: Optional[List[PackGroup]] = None
    pagination: Pagination
