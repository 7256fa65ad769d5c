from typing import Any, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from marketsync.services.exceptions import ValidationError
from marketsync.services.fazt_impl.schemas import FaztRateTier


def parse_tiers(raw_tiers: Iterable[Any]) -> list[FaztRateTier]:
    """Validates stored or submitted tiers and rejects overlapping brackets."""
    try:
        tiers = [tier if isinstance(tier, FaztRateTier) else FaztRateTier.model_validate(tier) for tier in raw_tiers]
    except PydanticValidationError as e:
        raise ValidationError("Invalid rate tier", details={"errors": e.errors(include_url=False)}) from e

    ordered = sorted(tiers, key=lambda tier: tier.min_shipments)
    for previous, current in zip(ordered, ordered[1:]):
        if previous.max_shipments is None or previous.max_shipments >= current.min_shipments:
            raise ValidationError(f"Rate tiers overlap at {current.min_shipments} shipments")
    return ordered


def select_tier(tiers: Iterable[FaztRateTier], count: int) -> Optional[FaztRateTier]:
    """
    Picks the bracket for a monthly shipment count.

    Input order is not trusted. Counts below the first bracket use the first
    one; counts above every bracket, or falling in a gap between two, use the
    highest bracket starting at or below the count. Only an empty schedule
    yields None.
    """
    ordered = sorted(tiers, key=lambda tier: tier.min_shipments)
    if not ordered:
        return None

    for tier in ordered:
        if tier.contains(count):
            return tier

    if count < ordered[0].min_shipments:
        return ordered[0]
    return [tier for tier in ordered if tier.min_shipments <= count][-1]
