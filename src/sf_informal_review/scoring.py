from __future__ import annotations

from typing import Iterable, Optional

from .models import Comparable, StrengthTier

STRONG_GAP_PERCENT = 15.0
MEDIUM_GAP_PERCENT = 5.0


def gap_percent(assessed_value: float, reference_value: float) -> float:
    """Share of the assessed value that exceeds the reference value, in percent.

    ``assessed_value`` must be positive; callers validate that upstream.
    """

    return (assessed_value - reference_value) / assessed_value * 100.0


def case_strength(assessed_value: float, reference_value: float) -> StrengthTier:
    gap = gap_percent(assessed_value, reference_value)
    if gap >= STRONG_GAP_PERCENT:
        return StrengthTier.STRONG
    if gap >= MEDIUM_GAP_PERCENT:
        return StrengthTier.MEDIUM
    return StrengthTier.WEAK


def mean_price(comparables: Iterable[Comparable]) -> Optional[float]:
    """Mean sale price of the included comparables, or None when none are."""

    prices = [c.sale_price for c in comparables if c.included]
    if not prices:
        return None
    return sum(prices) / len(prices)
