from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class FalabellaOrderItem(BaseModel):
    sku: str = ""
    shop_sku: Optional[str] = None
    name: str = ""
    quantity: int = Field(1, ge=1)
    unit_price: Decimal = Decimal("0")
    currency: str = "CLP"


class FalabellaNotification(BaseModel):
    """Order notification pushed by the Falabella seller center integration."""

    order_id: str
    order_number: Optional[str] = None
    status: str = ""
    sale_date: datetime
    items: List[FalabellaOrderItem] = Field(default_factory=list)

    @field_validator("order_id", "order_number", mode="before")
    @classmethod
    def _as_text(cls, value):
        return None if value is None else str(value)
