"""
Snapshot service.

Loads the live snapshot from the spreadsheet API and runs the engine
over it. Nothing is cached between calls: every request reads a fresh
snapshot and recomputes every derived view.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import structlog

from exceptions import ValidationError
from integrations.sheets_client import SheetsClient, get_sheets_client
from models.records import NormalizationReport, SaleTransaction, Snapshot
from models.reconciliation import AugmentedSkuGroup, InventoryStatus, ProfitabilitySummary
from models.trends import TrendResponse
from services.bucketing_service import aggregate_trend, resolve_granularity
from services.inventory_status_service import derive_inventory_status
from services.normalizer_service import normalize_snapshot
from services.profitability_service import summarize_profitability
from services.reconciliation_service import reconcile_snapshot
from services.sales_metrics_service import resolve_as_of
from services.trend_statistics_service import compute_trend_statistics

logger = structlog.get_logger(__name__)

# Sale field summed by each sales trend metric
SALES_METRICS = {
    "revenue": lambda s: s.total_revenue,
    "units": lambda s: s.quantity,
}


def _invoice_date(sale: SaleTransaction) -> Optional[date]:
    return sale.invoice_date


class SnapshotService:
    """
    Runs reconciliation and trends over the live snapshot.

    Raw snapshots (e.g. posted by a client) go through the same path via
    the ``*_from_raw`` methods.
    """

    def __init__(self, client: Optional[SheetsClient] = None):
        self.client = client or get_sheets_client()

    # ===================
    # LOADING
    # ===================

    def load_snapshot(self) -> Tuple[Snapshot, NormalizationReport]:
        """
        Fetch and normalize all five collections.

        Raises:
            SnapshotFetchError: If the spreadsheet API fails
        """
        raw = self.client.fetch_snapshot()
        snapshot, report = normalize_snapshot(raw)
        logger.info("snapshot_loaded", rejected=report.total_rejected)
        return snapshot, report

    # ===================
    # RECONCILIATION
    # ===================

    def sku_groups_from_raw(
        self,
        raw: Dict[str, Any],
        as_of: Optional[date] = None,
    ) -> List[AugmentedSkuGroup]:
        """
        Reconcile a raw snapshot.

        A missing (None) inventory collection means stock positions are
        derived from orders, ledger and sales.
        """
        derive = raw.get("inventory") is None
        snapshot, _ = normalize_snapshot(raw)
        return reconcile_snapshot(snapshot, as_of=as_of, derive_inventory=derive)

    def get_sku_groups(self, as_of: Optional[date] = None) -> List[AugmentedSkuGroup]:
        """Reconcile the live snapshot; derives inventory if the sheet is empty."""
        snapshot, _ = self.load_snapshot()
        return reconcile_snapshot(
            snapshot, as_of=as_of, derive_inventory=not snapshot.inventory
        )

    def get_inventory_status(self, as_of: Optional[date] = None) -> List[InventoryStatus]:
        """Derive stock positions from the live snapshot's movements."""
        snapshot, _ = self.load_snapshot()
        return derive_inventory_status(
            snapshot.orders, snapshot.serialized_units, snapshot.sales, as_of=as_of
        )

    def get_profitability(self, as_of: Optional[date] = None) -> ProfitabilitySummary:
        """Portfolio profitability over the live snapshot."""
        return summarize_profitability(self.get_sku_groups(as_of=as_of))

    # ===================
    # TRENDS
    # ===================

    def get_sales_trend(
        self,
        granularity: str = "monthly",
        metric: str = "revenue",
        moving_average_period: Optional[int] = None,
        as_of: Optional[date] = None,
    ) -> TrendResponse:
        """
        Bucket live sales by invoice date.

        Args:
            granularity: daily | weekly | monthly | quarterly | yearly
            metric: "revenue" (total_revenue) or "units" (quantity)
            moving_average_period: Trailing window for the moving average
            as_of: Reference date for calendar-year windows

        Raises:
            InvalidGranularityError: Unknown granularity
            ValidationError: Unknown metric
        """
        selector = SALES_METRICS.get(metric)
        if selector is None:
            raise ValidationError(
                f"Metric must be one of: {', '.join(SALES_METRICS)}",
                code="INVALID_METRIC",
                details={"provided": metric, "valid": list(SALES_METRICS)},
            )
        resolved = resolve_granularity(granularity)
        as_of = resolve_as_of(as_of)

        snapshot, _ = self.load_snapshot()
        points = aggregate_trend(snapshot.sales, selector, _invoice_date, resolved, as_of=as_of)
        statistics = compute_trend_statistics(points, moving_average_period)

        return TrendResponse(granularity=resolved, points=points, statistics=statistics)


# Singleton instance
_snapshot_service: Optional[SnapshotService] = None


def get_snapshot_service() -> SnapshotService:
    """Get singleton instance of SnapshotService."""
    global _snapshot_service
    if _snapshot_service is None:
        _snapshot_service = SnapshotService()
    return _snapshot_service
