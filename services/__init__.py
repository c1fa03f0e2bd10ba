"""
Business logic services.

Each service handles one stage of the engine: normalization, the serial
ledger, reconciliation, inventory status, profitability, sales velocity,
calendar bucketing and trend statistics.
"""

from services.normalizer_service import normalize_records, normalize_snapshot
from services.serial_ledger_service import (
    SerialLedger,
    UnitStatus,
    build_serial_ledger,
    classify_unit,
)
from services.reconciliation_service import reconcile, reconcile_snapshot
from services.inventory_status_service import derive_inventory_status
from services.profitability_service import compute_profitability, summarize_profitability
from services.sales_metrics_service import compute_sales_metrics, compute_weekly_sales
from services.bucketing_service import aggregate_trend, resolve_granularity
from services.trend_statistics_service import compute_trend_statistics, moving_average
from services.snapshot_service import SnapshotService, get_snapshot_service

__all__ = [
    "normalize_records",
    "normalize_snapshot",
    "SerialLedger",
    "UnitStatus",
    "build_serial_ledger",
    "classify_unit",
    "reconcile",
    "reconcile_snapshot",
    "derive_inventory_status",
    "compute_profitability",
    "summarize_profitability",
    "compute_sales_metrics",
    "compute_weekly_sales",
    "aggregate_trend",
    "resolve_granularity",
    "compute_trend_statistics",
    "moving_average",
    "SnapshotService",
    "get_snapshot_service",
]
