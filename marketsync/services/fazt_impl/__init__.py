from .monthly_flex_cost import MonthlyFlexCostService
from .schemas import FaztRateTier
from .service import FaztCostService
from .tiers import parse_tiers, select_tier

__all__ = [
    "FaztCostService",
    "FaztRateTier",
    "MonthlyFlexCostService",
    "parse_tiers",
    "select_tier",
]
