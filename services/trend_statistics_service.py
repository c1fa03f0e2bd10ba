"""
Summary statistics over a bucketed series.

Everything here is recomputed from the full point list on every call.

Rounding:
- mean, growth and period growth: 2 decimal places
- moving average: half-up to ``moving_average_places`` (whole numbers by default)
- median: lower-middle element for an even number of points
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence, Tuple

import structlog

from config import get_settings
from exceptions import InvalidMovingAveragePeriodError
from models.trends import TrendDirection, TrendPoint, TrendStatistics, TrendStrength

logger = structlog.get_logger(__name__)

HUNDRED = Decimal("100")


def percent_change(previous: Decimal, current: Decimal) -> Optional[Decimal]:
    """Percent change from previous to current; None unless previous > 0."""
    if previous <= 0:
        return None
    return round((current - previous) / previous * HUNDRED, 2)


def lower_median(values: Sequence[Decimal]) -> Optional[Decimal]:
    """Middle value of the sorted list; the lower of the two for an even count."""
    if not values:
        return None
    ordered = sorted(values)
    return ordered[(len(ordered) - 1) // 2]


def moving_average(
    values: Sequence[Decimal],
    period: int,
    places: Optional[int] = None,
) -> List[Optional[Decimal]]:
    """
    Trailing moving average, same length as values.

    Index i < period - 1 is None; otherwise the mean of values[i-period+1..i].

    Raises:
        InvalidMovingAveragePeriodError: If period < 1
    """
    if period < 1:
        raise InvalidMovingAveragePeriodError(period)
    if places is None:
        places = get_settings().moving_average_places
    quantum = Decimal(1).scaleb(-places)

    averages: List[Optional[Decimal]] = []
    window_sum = Decimal("0")
    for i, value in enumerate(values):
        window_sum += value
        if i >= period:
            window_sum -= values[i - period]
        if i < period - 1:
            averages.append(None)
        else:
            averages.append((window_sum / period).quantize(quantum, rounding=ROUND_HALF_UP))
    return averages


def period_growth(values: Sequence[Decimal]) -> List[Optional[Decimal]]:
    """Percent change from the preceding bucket; None for the first."""
    growth: List[Optional[Decimal]] = [None] if values else []
    for previous, current in zip(values, values[1:]):
        growth.append(percent_change(previous, current))
    return growth


def classify_trend(
    change_pct: Optional[Decimal],
    threshold_strong: Decimal = Decimal("20"),
    threshold_weak: Decimal = Decimal("5"),
) -> Tuple[TrendDirection, TrendStrength]:
    """
    Classify trend direction and strength from a percentage change.

    - STRONG: |change| >= 20%
    - MODERATE: 5% <= |change| < 20%
    - WEAK: |change| < 5% (reported as STABLE), or no change computable
    """
    if change_pct is None:
        return TrendDirection.STABLE, TrendStrength.WEAK

    abs_change = abs(change_pct)

    if abs_change < threshold_weak:
        return TrendDirection.STABLE, TrendStrength.WEAK
    direction = TrendDirection.UP if change_pct > 0 else TrendDirection.DOWN
    if abs_change < threshold_strong:
        return direction, TrendStrength.MODERATE
    return direction, TrendStrength.STRONG


def compute_trend_statistics(
    points: Sequence[TrendPoint],
    moving_average_period: Optional[int] = None,
) -> TrendStatistics:
    """
    Compute min, max, mean, median, growth and per-bucket series.

    Args:
        points: Output of aggregate_trend, in chronological order
        moving_average_period: Trailing window (defaults to settings, 3)

    Returns:
        TrendStatistics; scalars are None and series empty for no points

    Raises:
        InvalidMovingAveragePeriodError: If moving_average_period < 1
    """
    period = moving_average_period
    if period is None:
        period = get_settings().moving_average_period
    if period < 1:
        raise InvalidMovingAveragePeriodError(period)

    values = [p.value for p in points]
    if not values:
        return TrendStatistics()

    growth = percent_change(values[0], values[-1]) if len(values) >= 2 else None
    direction, strength = classify_trend(growth)

    stats = TrendStatistics(
        min=min(values),
        max=max(values),
        mean=round(sum(values) / len(values), 2),
        median=lower_median(values),
        growth=growth,
        direction=direction,
        strength=strength,
        moving_average=moving_average(values, period),
        period_growth=period_growth(values),
    )

    logger.debug(
        "trend_statistics_computed",
        points=len(values),
        growth=str(growth) if growth is not None else None,
        direction=direction.value,
    )
    return stats
