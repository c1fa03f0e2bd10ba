"""
Trailing sales velocity per mtm.

All windows end at an explicit reference date (``as_of``) and are
inclusive of it, so results never depend on the wall clock.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Set

from config import get_settings
from models.records import SaleTransaction
from models.reconciliation import SalesMetrics
from utils.coercion import reference_today


def resolve_as_of(as_of: Optional[date] = None) -> date:
    """Use the given reference date, or today in the reference time zone."""
    if as_of is not None:
        return as_of
    return reference_today(get_settings().tz)


def window_start(as_of: date, window_days: int) -> date:
    """First day of a trailing window ending on as_of."""
    return as_of - timedelta(days=window_days)


def compute_weekly_sales(
    sales: Iterable[SaleTransaction],
    as_of: date,
    window_days: Optional[int] = None,
    slots: Optional[int] = None,
) -> Dict[str, List[int]]:
    """
    Bucket trailing-window unit sales into weekly slots per mtm.

    slot = (invoice_date - window_start).days // 7. Slots outside
    0..slots-1 are dropped rather than folded into a neighbour, and
    sales without an invoice date are skipped.

    Returns:
        mtm -> list of exactly ``slots`` unit totals, oldest first
    """
    settings = get_settings()
    window_days = window_days or settings.sales_window_days
    slots = slots or settings.weekly_sales_slots
    start = window_start(as_of, window_days)

    weekly: Dict[str, List[int]] = {}
    for sale in sales:
        sale_date = sale.invoice_date
        if sale_date is None or sale_date < start or sale_date > as_of:
            continue
        index = (sale_date - start).days // 7
        if not 0 <= index < slots:
            continue
        buckets = weekly.setdefault(sale.mtm, [0] * slots)
        buckets[index] += sale.quantity

    return weekly


def compute_sales_metrics(
    sales: Iterable[SaleTransaction],
    as_of: date,
    window_days: Optional[int] = None,
) -> Dict[str, SalesMetrics]:
    """
    Unit velocity per mtm over the trailing window.

    - total_90d: units in [as_of - window, as_of]
    - last_30d: units in the last 30 days
    - prev_30d: units 31-60 days back
    - affected_customers: distinct buyers in the window
    """
    window_days = window_days or get_settings().sales_window_days
    start = window_start(as_of, window_days)
    thirty_days_ago = as_of - timedelta(days=30)
    sixty_days_ago = as_of - timedelta(days=60)

    totals: Dict[str, Dict[str, int]] = defaultdict(lambda: {
        "last_30d": 0,
        "prev_30d": 0,
        "total_90d": 0,
    })
    buyers: Dict[str, Set[str]] = defaultdict(set)

    for sale in sales:
        sale_date = sale.invoice_date
        if sale_date is None or sale_date < start or sale_date > as_of:
            continue
        data = totals[sale.mtm]
        data["total_90d"] += sale.quantity
        if sale.buyer_id:
            buyers[sale.mtm].add(sale.buyer_id)

        if sale_date >= thirty_days_ago:
            data["last_30d"] += sale.quantity
        elif sale_date >= sixty_days_ago:
            data["prev_30d"] += sale.quantity

    return {
        mtm: SalesMetrics(
            mtm=mtm,
            last_30d=data["last_30d"],
            prev_30d=data["prev_30d"],
            total_90d=data["total_90d"],
            affected_customers=len(buyers.get(mtm, ())),
        )
        for mtm, data in totals.items()
    }


def last_sale_dates(sales: Iterable[SaleTransaction]) -> Dict[str, date]:
    """Most recent invoice date per mtm."""
    latest: Dict[str, date] = {}
    for sale in sales:
        if sale.invoice_date is None:
            continue
        current = latest.get(sale.mtm)
        if current is None or sale.invoice_date > current:
            latest[sale.mtm] = sale.invoice_date
    return latest
