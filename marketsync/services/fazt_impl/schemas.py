from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class FaztRateTier(BaseModel):
    """One volume bracket of the courier's rate schedule. ``max_shipments=None`` is unbounded."""

    min_shipments: int = Field(ge=0)
    max_shipments: Optional[int] = Field(None, ge=0)
    same_day_rm: Decimal = Field(ge=0, description="Same-day rate inside the Metropolitan Region")
    next_day_v_region: Decimal = Field(ge=0, description="Next-day rate to the V Region")

    @model_validator(mode="after")
    def _check_bounds(self) -> "FaztRateTier":
        if self.max_shipments is not None and self.max_shipments < self.min_shipments:
            raise ValueError(f"max_shipments ({self.max_shipments}) is below min_shipments ({self.min_shipments})")
        return self

    def contains(self, count: int) -> bool:
        return self.min_shipments <= count and (self.max_shipments is None or count <= self.max_shipments)

    def rate_for(self, service_type: str) -> Decimal:
        if service_type == "next_day_v_region":
            return self.next_day_v_region
        return self.same_day_rm
