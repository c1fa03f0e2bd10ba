"""
Trend models.

These models define the shapes for calendar-bucketed series and the
summary statistics derived from them.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import Field

from models.base import BaseSchema, RecordSchema


class Granularity(str, Enum):
    """Calendar period a series is bucketed by."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class TrendDirection(str, Enum):
    """Direction of a trend."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class TrendStrength(str, Enum):
    """Strength/magnitude of a trend."""

    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class TrendPoint(RecordSchema):
    """One calendar bucket of a series."""

    sort_key: str = Field(..., description="Sortable period id (e.g., '2024-W05', '2024-Q3')")
    label: str = Field(..., description="Display label (e.g., 'Week 5, 2024', 'Q3 2024')")
    value: Decimal = Field(..., description="Summed metric for the period")


class TrendStatistics(RecordSchema):
    """Summary statistics over a bucketed series."""

    min: Optional[Decimal] = Field(None, description="Smallest bucket value")
    max: Optional[Decimal] = Field(None, description="Largest bucket value")
    mean: Optional[Decimal] = Field(None, description="Arithmetic mean, 2 dp")
    median: Optional[Decimal] = Field(
        None, description="Middle value; lower-middle for an even count"
    )
    growth: Optional[Decimal] = Field(
        None, description="Percent change first to last bucket"
    )
    direction: TrendDirection = Field(
        default=TrendDirection.STABLE, description="Direction of growth"
    )
    strength: TrendStrength = Field(
        default=TrendStrength.WEAK, description="Magnitude of growth"
    )
    moving_average: List[Optional[Decimal]] = Field(
        default_factory=list, description="Trailing mean per bucket"
    )
    period_growth: List[Optional[Decimal]] = Field(
        default_factory=list, description="Percent change from the previous bucket"
    )


class TrendRecord(BaseSchema):
    """A dated value posted for bucketing."""

    date: Any = Field(None, description="Date in any supported format")
    value: Any = Field(None, description="Numeric value")


class TrendRequest(BaseSchema):
    """Series posted for aggregation."""

    records: List[TrendRecord] = Field(default_factory=list)
    granularity: str = Field(default=Granularity.MONTHLY.value)
    moving_average_period: Optional[int] = Field(None, description="Defaults to settings")
    as_of: Optional[date] = Field(None, description="Reference date; defaults to today")


class TrendResponse(BaseSchema):
    """Bucketed series with its statistics."""

    granularity: Granularity
    points: List[TrendPoint] = Field(default_factory=list)
    statistics: TrendStatistics
