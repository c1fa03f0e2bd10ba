"""
Reconciliation API routes.

Per-SKU reconciled view, derived inventory status and portfolio
profitability, over either a posted snapshot or the live sheets.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
import structlog

from models.reconciliation import (
    AugmentedSkuGroup,
    InventoryStatus,
    ProfitabilitySummary,
    ReconciliationRequest,
)
from services.snapshot_service import get_snapshot_service
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


# ===================
# SKU GROUPS
# ===================

@router.post("/sku-groups", response_model=List[AugmentedSkuGroup])
def reconcile_posted_snapshot(request: ReconciliationRequest):
    """
    Reconcile a posted snapshot.

    Omit `inventory` to derive stock positions from orders, ledger and sales.

    Returns:
        One reconciled group per mtm, sorted by mtm
    """
    try:
        raw = request.model_dump(exclude={"as_of"})
        return get_snapshot_service().sku_groups_from_raw(raw, as_of=request.as_of)
    except Exception as e:
        return handle_error(e)


@router.get("/sku-groups", response_model=List[AugmentedSkuGroup])
def get_sku_groups(
    as_of: Optional[date] = Query(None, alias="asOf", description="Reference date"),
):
    """
    Reconcile the live snapshot.

    Returns:
        One reconciled group per mtm, sorted by mtm
    """
    try:
        return get_snapshot_service().get_sku_groups(as_of=as_of)
    except Exception as e:
        return handle_error(e)


# ===================
# INVENTORY STATUS
# ===================

@router.get("/inventory-status", response_model=List[InventoryStatus])
def get_inventory_status(
    as_of: Optional[date] = Query(None, alias="asOf", description="Reference date"),
):
    """
    Derive per-mtm stock positions from orders, ledger and sales.

    Returns:
        InventoryStatus per mtm on order
    """
    try:
        return get_snapshot_service().get_inventory_status(as_of=as_of)
    except Exception as e:
        return handle_error(e)


# ===================
# PROFITABILITY
# ===================

@router.get("/profitability", response_model=ProfitabilitySummary)
def get_profitability(
    as_of: Optional[date] = Query(None, alias="asOf", description="Reference date"),
):
    """
    Portfolio profitability over the live snapshot.

    Returns:
        Stock-weighted SDP margin, margin by product line and stock KPIs
    """
    try:
        return get_snapshot_service().get_profitability(as_of=as_of)
    except Exception as e:
        return handle_error(e)
