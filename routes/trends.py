"""
Trend API routes.

Calendar bucketing with summary statistics, for posted series or the
live sales sheet.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
import structlog

from models.trends import TrendRecord, TrendRequest, TrendResponse
from services.bucketing_service import aggregate_trend, resolve_granularity
from services.snapshot_service import get_snapshot_service
from services.trend_statistics_service import compute_trend_statistics
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _record_value(record: TrendRecord):
    return record.value


def _record_date(record: TrendRecord):
    return record.date


# ===================
# TREND ROUTES
# ===================

@router.post("", response_model=TrendResponse)
def build_trend(request: TrendRequest):
    """
    Bucket a posted series and compute its statistics.

    Records with unparseable dates or non-numeric values are dropped.

    Returns:
        TrendResponse with points in chronological order
    """
    try:
        granularity = resolve_granularity(request.granularity)
        points = aggregate_trend(
            request.records,
            _record_value,
            _record_date,
            granularity,
            as_of=request.as_of,
        )
        statistics = compute_trend_statistics(points, request.moving_average_period)
        return TrendResponse(granularity=granularity, points=points, statistics=statistics)
    except Exception as e:
        return handle_error(e)


@router.get("/sales", response_model=TrendResponse)
def get_sales_trend(
    granularity: str = Query("monthly", description="daily, weekly, monthly, quarterly or yearly"),
    metric: str = Query("revenue", description="revenue or units"),
    moving_average_period: Optional[int] = Query(None, alias="movingAveragePeriod"),
    as_of: Optional[date] = Query(None, alias="asOf", description="Reference date"),
):
    """
    Bucket live sales by invoice date.

    Returns:
        TrendResponse for the chosen metric
    """
    try:
        return get_snapshot_service().get_sales_trend(
            granularity=granularity,
            metric=metric,
            moving_average_period=moving_average_period,
            as_of=as_of,
        )
    except Exception as e:
        return handle_error(e)
