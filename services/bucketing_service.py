"""
Calendar bucketing of dated series.

Maps each dated value to a period at one of five granularities, sums
values per period and returns the periods in chronological order.

Sort keys are fixed-width so plain string ordering is chronological:
    daily      2024-01-05
    weekly     2024-W05    (ISO year and ISO week)
    monthly    2024-01
    quarterly  2024-Q1
    yearly     2024
"""

from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import structlog

from config import get_settings
from exceptions import InvalidGranularityError
from models.trends import Granularity, TrendPoint
from services.sales_metrics_service import resolve_as_of
from utils.coercion import parse_date, parse_decimal

logger = structlog.get_logger(__name__)

# Fixed English abbreviations; strftime("%b") follows the process locale
MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def resolve_granularity(granularity: Union[str, Granularity]) -> Granularity:
    """
    Parse a granularity name.

    Raises:
        InvalidGranularityError: If the name is not one of the five supported
    """
    if isinstance(granularity, Granularity):
        return granularity
    try:
        return Granularity(str(granularity).strip().lower())
    except ValueError:
        raise InvalidGranularityError(str(granularity), [g.value for g in Granularity])


def period_key(d: date, granularity: Union[str, Granularity]) -> str:
    """Sortable period id for a date."""
    granularity = resolve_granularity(granularity)

    if granularity == Granularity.DAILY:
        return d.isoformat()
    if granularity == Granularity.WEEKLY:
        iso_year, iso_week, _ = d.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"
    if granularity == Granularity.MONTHLY:
        return f"{d.year:04d}-{d.month:02d}"
    if granularity == Granularity.QUARTERLY:
        return f"{d.year:04d}-Q{(d.month - 1) // 3 + 1}"
    return f"{d.year:04d}"


def period_label(d: date, granularity: Union[str, Granularity]) -> str:
    """Human-readable label for the period a date falls in."""
    granularity = resolve_granularity(granularity)
    month = MONTH_ABBR[d.month - 1]

    if granularity == Granularity.DAILY:
        return f"{month} {d.day}, {d.year}"
    if granularity == Granularity.WEEKLY:
        iso_year, iso_week, _ = d.isocalendar()
        return f"Week {iso_week}, {iso_year}"
    if granularity == Granularity.MONTHLY:
        return f"{month} '{d.year % 100:02d}"
    if granularity == Granularity.QUARTERLY:
        return f"Q{(d.month - 1) // 3 + 1} {d.year}"
    return str(d.year)


def bucket_limit(granularity: Granularity) -> Optional[int]:
    """Most recent buckets kept, or None for calendar-year windows."""
    settings = get_settings()
    return {
        Granularity.MONTHLY: settings.monthly_window,
        Granularity.QUARTERLY: settings.quarterly_window,
        Granularity.YEARLY: settings.yearly_window,
    }.get(granularity)


def aggregate_trend(
    records: Iterable[Any],
    value_selector: Callable[[Any], Any],
    date_selector: Callable[[Any], Any],
    granularity: Union[str, Granularity],
    as_of: Optional[date] = None,
) -> List[TrendPoint]:
    """
    Bucket dated records into calendar periods.

    Dates are resolved in the configured reference time zone. Records whose
    date does not parse, or whose value is not numeric, are dropped.

    Windowing:
    - daily / weekly: only records dated in the calendar year of ``as_of``,
      so a week straddling New Year keeps just its in-year days
    - monthly / quarterly / yearly: only the most recent N periods

    Args:
        records: Any records
        value_selector: Extracts the numeric metric from a record
        date_selector: Extracts the date (str, date or datetime) from a record
        granularity: daily | weekly | monthly | quarterly | yearly
        as_of: Reference date for the calendar-year window (defaults to today)

    Returns:
        TrendPoint list in chronological order

    Raises:
        InvalidGranularityError: If granularity is unknown
    """
    granularity = resolve_granularity(granularity)
    tz = get_settings().tz
    as_of = resolve_as_of(as_of)

    limit = bucket_limit(granularity)
    buckets: Dict[str, Dict] = {}
    dropped = 0

    for record in records:
        d = parse_date(date_selector(record), tz)
        if d is None:
            dropped += 1
            continue
        try:
            value = parse_decimal(value_selector(record))
        except ValueError:
            dropped += 1
            continue
        if value is None:
            dropped += 1
            continue
        if limit is None and d.year != as_of.year:
            continue

        key = period_key(d, granularity)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = {
                "label": period_label(d, granularity),
                "value": Decimal("0"),
            }
        bucket["value"] += value

    ordered = sorted(buckets.items())

    if limit is not None:
        ordered = ordered[-limit:]

    points = [
        TrendPoint(sort_key=key, label=bucket["label"], value=bucket["value"])
        for key, bucket in ordered
    ]

    logger.debug(
        "trend_aggregated",
        granularity=granularity.value,
        points=len(points),
        dropped=dropped,
    )
    return points
