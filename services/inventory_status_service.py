"""
Inventory status derivation.

Rebuilds each mtm's stock position from the raw movements (orders,
serialized units and sales) instead of trusting the inventory sheet.
Useful as a cross-check of the sheet, and as its stand-in when no
inventory collection is supplied.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from math import floor
from typing import Dict, Iterable, List, Optional

import structlog

from config import get_settings
from models.records import Order, SaleTransaction, SerializedUnit
from models.reconciliation import InventoryStatus, composite_key
from services.sales_metrics_service import (
    compute_sales_metrics,
    last_sale_dates,
    resolve_as_of,
)
from services.serial_ledger_service import (
    SerialLedger,
    UnitStatus,
    build_serial_ledger,
    classify_unit,
)

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
DAYS_PER_WEEK = Decimal("7")


def weekly_run_rate(units_in_window: int, window_days: int) -> Decimal:
    """Average units per week over a trailing window, 2 dp."""
    if window_days <= 0:
        return ZERO
    weeks = Decimal(window_days) / DAYS_PER_WEEK
    return round(Decimal(units_in_window) / weeks, 2)


def weeks_of_inventory(on_hand: int, units_in_window: int, window_days: int) -> Optional[int]:
    """
    Whole weeks of stock at the trailing-window run rate.

    floor(on_hand / (units_in_window / (window_days / 7))), computed on the
    unrounded rate. None when there is nothing on hand or no sales velocity
    to divide by.
    """
    if on_hand <= 0 or units_in_window <= 0 or window_days <= 0:
        return None
    return floor(Decimal(on_hand) * Decimal(window_days) / (DAYS_PER_WEEK * units_in_window))


def derive_inventory_status(
    orders: Iterable[Order],
    serialized_units: Iterable[SerializedUnit],
    sales: Iterable[SaleTransaction],
    as_of: Optional[date] = None,
    ledger: Optional[SerialLedger] = None,
) -> List[InventoryStatus]:
    """
    Derive the stock position of every mtm that appears on an order.

    Per mtm:
    - shipped / arrived: order quantities, arrived when actual_arrival is set
    - sold: sum of sale quantities (returns net off)
    - on hand: arrived serialized units whose serial is not sold
    - units whose key matches no order line are left out entirely
    - unaccounted: arrived - sold - on hand; non-zero flags a gap between
      the serial ledger and the sales record
    - average costs are per shipped unit; on-hand value uses the FOB cost
    - weeks of inventory = floor(on hand / weekly run rate)

    Returns:
        InventoryStatus list sorted by mtm
    """
    settings = get_settings()
    as_of = resolve_as_of(as_of)
    orders = list(orders)
    units = list(serialized_units)
    sales = list(sales)
    ledger = ledger or build_serial_ledger(orders, units, sales)

    totals: Dict[str, Dict] = defaultdict(lambda: {
        "model_name": "",
        "shipped": 0,
        "arrived": 0,
        "landing_value": ZERO,
        "fob_value": ZERO,
        "otw_value": ZERO,
        "last_arrival": None,
    })

    for order in sorted(orders, key=lambda o: (o.mtm, o.sales_order)):
        item = totals[order.mtm]
        if not item["model_name"] and order.model_name:
            item["model_name"] = order.model_name
        item["shipped"] += order.qty
        item["landing_value"] += order.landing_cost_unit_price * order.qty
        item["fob_value"] += order.order_value
        if order.has_arrived:
            item["arrived"] += order.qty
            if item["last_arrival"] is None or order.actual_arrival > item["last_arrival"]:
                item["last_arrival"] = order.actual_arrival
        else:
            item["otw_value"] += order.order_value

    sold_by_mtm: Dict[str, int] = defaultdict(int)
    for sale in sales:
        sold_by_mtm[sale.mtm] += sale.quantity

    serials: Dict[str, Dict[UnitStatus, int]] = defaultdict(lambda: defaultdict(int))
    for unit in units:
        if composite_key(unit.sales_order, unit.mtm) not in ledger.ordered_keys:
            continue
        serials[unit.mtm][classify_unit(unit, ledger.sold_serials, ledger.arrived_keys)] += 1

    metrics = compute_sales_metrics(sales, as_of, settings.sales_window_days)
    last_sales = last_sale_dates(sales)

    statuses: List[InventoryStatus] = []
    for mtm in sorted(totals):
        item = totals[mtm]
        counts = serials.get(mtm, {})
        on_hand = counts.get(UnitStatus.ON_HAND, 0)
        arrived_serialized = on_hand + counts.get(UnitStatus.SOLD, 0)
        otw_serialized = counts.get(UnitStatus.IN_TRANSIT, 0)
        sold = sold_by_mtm.get(mtm, 0)
        shipped = item["shipped"]

        avg_landing = round(item["landing_value"] / shipped, 2) if shipped > 0 else ZERO
        avg_fob = round(item["fob_value"] / shipped, 2) if shipped > 0 else ZERO

        mtm_metrics = metrics.get(mtm)
        window_units = mtm_metrics.total_90d if mtm_metrics else 0

        last_arrival = item["last_arrival"]
        last_sale = last_sales.get(mtm)

        status = InventoryStatus(
            mtm=mtm,
            model_name=item["model_name"],
            total_shipped_qty=shipped,
            total_arrived_qty=item["arrived"],
            total_sold_qty=sold,
            total_serialized_qty=arrived_serialized + otw_serialized,
            arrived_serialized_qty=arrived_serialized,
            otw_serialized_qty=otw_serialized,
            on_hand_qty=on_hand,
            unaccounted_qty=item["arrived"] - sold - on_hand,
            on_the_way_qty=shipped - item["arrived"],
            on_the_way_value=item["otw_value"],
            on_hand_value=round(avg_fob * on_hand, 2),
            average_landing_cost=avg_landing,
            average_fob_cost=avg_fob,
            weekly_run_rate=weekly_run_rate(window_units, settings.sales_window_days),
            weeks_of_inventory=weeks_of_inventory(on_hand, window_units, settings.sales_window_days),
            last_arrival_date=last_arrival,
            days_since_last_arrival=(as_of - last_arrival).days if last_arrival else None,
            days_since_last_sale=(as_of - last_sale).days if last_sale else None,
        )
        statuses.append(status)

    unaccounted = [s.mtm for s in statuses if s.unaccounted_qty != 0]
    if unaccounted:
        logger.info("unaccounted_stock_detected", mtms=unaccounted)

    logger.info("inventory_status_derived", as_of=as_of.isoformat(), skus=len(statuses))
    return statuses
