"""Rule-based price estimates from deliverable type, deadline and priority."""

import math
from dataclasses import dataclass

from swiftjobs.models.enums import DeliverableType, JobPriority

BASE_PRICES: dict[DeliverableType, int] = {
    DeliverableType.LANDING_PAGE: 150,
    DeliverableType.AD_1MIN: 200,
    DeliverableType.BUG_FIX: 100,
    DeliverableType.DESIGN: 250,
    DeliverableType.OTHER: 150,
}

# (max hours, multiplier), checked in order; longer deadlines pay base price
DEADLINE_MULTIPLIERS: list[tuple[int, float]] = [
    (24, 1.5),
    (48, 1.25),
    (72, 1.0),
]

FAST_PRIORITY_MULTIPLIER = 1.2


@dataclass(frozen=True)
class PriceEstimate:
    base_price: int
    deadline_multiplier: float
    priority_multiplier: float
    estimated_price: int
    fast_price: int | None
    deadline_label: str


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def deadline_multiplier(deadline_hours: float) -> float:
    for max_hours, multiplier in DEADLINE_MULTIPLIERS:
        if deadline_hours <= max_hours:
            return multiplier
    return 1.0


def deadline_label(hours: float) -> str:
    """Human-readable deadline bucket."""
    for max_hours, _ in DEADLINE_MULTIPLIERS:
        if hours <= max_hours:
            return f"{max_hours} hours"
    return f"{math.ceil(hours / 24)} days"


def calculate_price_estimate(
    deliverable_type: DeliverableType | str,
    deadline_hours: float,
    priority: JobPriority | str = JobPriority.NORMAL,
) -> PriceEstimate:
    """Price = round(base * deadline multiplier * priority multiplier).

    For normal-priority jobs ``fast_price`` shows what the fast lane would cost.
    """
    base = BASE_PRICES.get(DeliverableType(deliverable_type), BASE_PRICES[DeliverableType.OTHER])
    d_mult = deadline_multiplier(deadline_hours)
    is_fast = JobPriority(priority) == JobPriority.FAST
    p_mult = FAST_PRIORITY_MULTIPLIER if is_fast else 1.0

    return PriceEstimate(
        base_price=base,
        deadline_multiplier=d_mult,
        priority_multiplier=p_mult,
        estimated_price=_round_half_up(base * d_mult * p_mult),
        fast_price=None if is_fast else _round_half_up(base * d_mult * FAST_PRIORITY_MULTIPLIER),
        deadline_label=deadline_label(deadline_hours),
    )


def format_price(price: float) -> str:
    return f"${price:,.0f}"
