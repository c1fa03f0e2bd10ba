"""
SKU reconciliation.

Joins orders, the serialized-unit ledger, sales, inventory snapshots and
the price list into one AugmentedSkuGroup per mtm, each carrying a
per-sales-order breakdown.

The output is a pure function of the inputs and ``as_of``: records are
put into a canonical order before any "first wins" choice, and groups and
details are sorted, so shuffled input gives identical output.
"""

from collections import Counter, defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

import structlog

from config import get_settings
from models.records import (
    InventorySnapshot,
    Order,
    PriceListEntry,
    SaleTransaction,
    SerializedUnit,
    Snapshot,
)
from models.reconciliation import (
    AugmentedSkuGroup,
    SalesOrderDetail,
    SkuOrderKey,
    composite_key,
)
from services.inventory_status_service import derive_inventory_status
from services.profitability_service import compute_profitability
from services.sales_metrics_service import (
    compute_sales_metrics,
    compute_weekly_sales,
    resolve_as_of,
)
from services.serial_ledger_service import SerialLedger, build_serial_ledger

logger = structlog.get_logger(__name__)


def _canonical_price_list(entries: Iterable[PriceListEntry]) -> List[PriceListEntry]:
    return sorted(entries, key=lambda e: (e.sales_order or "", e.model_dump_json()))


def _canonical_inventory(rows: Iterable[InventorySnapshot]) -> Dict[str, InventorySnapshot]:
    by_mtm: Dict[str, InventorySnapshot] = {}
    duplicates: Set[str] = set()
    for row in sorted(rows, key=lambda r: r.model_dump_json()):
        if row.mtm in by_mtm:
            duplicates.add(row.mtm)
            continue
        by_mtm[row.mtm] = row
    if duplicates:
        logger.warning("duplicate_inventory_rows", mtms=sorted(duplicates))
    return by_mtm


def on_the_way_by_key(orders: Iterable[Order]) -> Dict[SkuOrderKey, int]:
    """Units on order lines without an actual arrival, per key."""
    totals: Counter = Counter()
    for order in orders:
        if not order.has_arrived:
            totals[composite_key(order.sales_order, order.mtm)] += order.qty
    return dict(totals)


def arrival_date_by_key(orders: Iterable[Order]) -> Dict[SkuOrderKey, date]:
    """Most recent actual arrival per key."""
    latest: Dict[SkuOrderKey, date] = {}
    for order in orders:
        if not order.has_arrived:
            continue
        key = composite_key(order.sales_order, order.mtm)
        if key not in latest or order.actual_arrival > latest[key]:
            latest[key] = order.actual_arrival
    return latest


def ageing_days(arrival: Optional[date], as_of: date) -> Optional[int]:
    """Whole days from arrival to as_of; None without an arrival date."""
    if arrival is None:
        return None
    return (as_of - arrival).days


def _colors_by_key(
    price_list: List[PriceListEntry],
    units: List[SerializedUnit],
) -> Dict[SkuOrderKey, str]:
    colors: Dict[SkuOrderKey, str] = {}
    for entry in price_list:
        if entry.sales_order and entry.color:
            colors.setdefault(composite_key(entry.sales_order, entry.mtm), entry.color)
    for unit in sorted(units, key=lambda u: u.serial_number):
        if unit.color:
            colors.setdefault(composite_key(unit.sales_order, unit.mtm), unit.color)
    return colors


def reconcile(
    orders: Iterable[Order],
    serialized_units: Iterable[SerializedUnit],
    sales: Iterable[SaleTransaction],
    inventory: Iterable[InventorySnapshot],
    price_list: Iterable[PriceListEntry],
    as_of: Optional[date] = None,
    ledger: Optional[SerialLedger] = None,
) -> List[AugmentedSkuGroup]:
    """
    Build the reconciled per-SKU view.

    Algorithm:
    1. Group the price list by mtm; scalar fields come from the first
       entry in canonical order
    2. On-the-way per key = sum of qty on unarrived order lines
    3. Arrival date per key = latest actual arrival
    4. Ageing = days from arrival date to as_of
    5. One detail row per sales order tied to the mtm (price list, orders
       or ledger), sorted by sales order
    6. Merge the inventory snapshot; missing snapshot defaults to zeros
    7. Trailing-window unit sales and weekly buckets

    Args:
        orders, serialized_units, sales, inventory, price_list: Normalized snapshot
        as_of: Reference date for ageing and sales windows (defaults to today)
        ledger: Pre-built serial ledger for these inputs

    Returns:
        One AugmentedSkuGroup per mtm found in price list, orders or
        inventory, sorted by mtm
    """
    settings = get_settings()
    as_of = resolve_as_of(as_of)

    orders = list(orders)
    units = list(serialized_units)
    sales = list(sales)
    price_entries = _canonical_price_list(price_list)
    inventory_by_mtm = _canonical_inventory(inventory)

    ledger = ledger or build_serial_ledger(orders, units, sales)
    otw_by_key = on_the_way_by_key(orders)
    arrival_by_key = arrival_date_by_key(orders)
    colors = _colors_by_key(price_entries, units)

    shipped_by_key: Counter = Counter()
    orders_by_mtm: Dict[str, List[Order]] = defaultdict(list)
    for order in orders:
        shipped_by_key[composite_key(order.sales_order, order.mtm)] += order.qty
        orders_by_mtm[order.mtm].append(order)

    price_by_mtm: Dict[str, List[PriceListEntry]] = defaultdict(list)
    for entry in price_entries:
        price_by_mtm[entry.mtm].append(entry)

    sales_orders_by_mtm: Dict[str, Set[str]] = defaultdict(set)
    for entry in price_entries:
        if entry.sales_order:
            sales_orders_by_mtm[entry.mtm].add(entry.sales_order)
    for order in orders:
        sales_orders_by_mtm[order.mtm].add(order.sales_order)
    for unit in units:
        if composite_key(unit.sales_order, unit.mtm) in ledger.ordered_keys:
            sales_orders_by_mtm[unit.mtm].add(unit.sales_order)

    metrics = compute_sales_metrics(sales, as_of, settings.sales_window_days)
    weekly = compute_weekly_sales(
        sales, as_of, settings.sales_window_days, settings.weekly_sales_slots
    )

    mtms = sorted(set(price_by_mtm) | set(orders_by_mtm) | set(inventory_by_mtm))
    groups: List[AugmentedSkuGroup] = []

    for mtm in mtms:
        entries = price_by_mtm.get(mtm, [])
        first = entries[0] if entries else None
        snapshot = inventory_by_mtm.get(mtm)
        mtm_orders = sorted(
            orders_by_mtm.get(mtm, []), key=lambda o: (o.sales_order, o.model_dump_json())
        )

        details = []
        for sales_order in sorted(sales_orders_by_mtm.get(mtm, ())):
            key = composite_key(sales_order, mtm)
            arrival = arrival_by_key.get(key)
            details.append(SalesOrderDetail(
                sales_order=sales_order,
                shipped_qty=shipped_by_key.get(key, 0),
                on_hand_qty=ledger.on_hand_by_key.get(key, 0),
                on_the_way_qty=otw_by_key.get(key, 0),
                color=colors.get(key, ""),
                arrival_date=arrival,
                ageing_days=ageing_days(arrival, as_of),
            ))

        model_name = (first.model_name if first else None) or next(
            (o.model_name for o in mtm_orders if o.model_name), ""
        )
        description = (first.description if first else None) or ""
        specification = (
            (snapshot.specification if snapshot else None)
            or next((o.specification for o in mtm_orders if o.specification), None)
            or description
        )

        sdp = first.sdp if first else 0
        srp = first.srp if first else 0
        cost = snapshot.average_landing_cost if snapshot else 0
        figures = compute_profitability(sdp, srp, cost)
        mtm_metrics = metrics.get(mtm)

        group = AugmentedSkuGroup(
            mtm=mtm,
            model_name=model_name,
            product_line=(snapshot.product_line if snapshot else None) or "N/A",
            description=description,
            specification=specification,
            sdp=sdp,
            srp=srp,
            on_hand_qty=snapshot.on_hand_qty if snapshot else 0,
            on_the_way_qty=snapshot.on_the_way_qty if snapshot else 0,
            on_hand_value=snapshot.on_hand_value if snapshot else 0,
            on_the_way_value=snapshot.on_the_way_value if snapshot else 0,
            average_landing_cost=cost,
            weeks_of_inventory=snapshot.weeks_of_inventory if snapshot else None,
            sdp_margin=figures.sdp_margin,
            srp_margin=figures.srp_margin,
            sdp_profit=figures.sdp_profit,
            srp_profit=figures.srp_profit,
            sales_90d=mtm_metrics.total_90d if mtm_metrics else 0,
            weekly_sales=weekly.get(mtm, [0] * settings.weekly_sales_slots),
            sales_order_details=details,
            ledger_on_hand_qty=sum(d.on_hand_qty for d in details),
            ledger_on_the_way_qty=sum(d.on_the_way_qty for d in details),
        )

        if group.oversold:
            logger.warning("oversold_sku_detected", mtm=mtm, on_hand_qty=group.on_hand_qty)

        groups.append(group)

    logger.info(
        "reconciliation_complete",
        as_of=as_of.isoformat(),
        skus=len(groups),
        oversold=sum(1 for g in groups if g.oversold),
    )
    return groups


def reconcile_snapshot(
    snapshot: Snapshot,
    as_of: Optional[date] = None,
    derive_inventory: bool = False,
) -> List[AugmentedSkuGroup]:
    """
    Reconcile a normalized snapshot.

    With ``derive_inventory`` the stock positions are derived from orders,
    ledger and sales instead of read from the inventory collection.
    """
    as_of = resolve_as_of(as_of)
    ledger = build_serial_ledger(snapshot.orders, snapshot.serialized_units, snapshot.sales)
    inventory = snapshot.inventory

    if derive_inventory:
        statuses = derive_inventory_status(
            snapshot.orders, snapshot.serialized_units, snapshot.sales, as_of=as_of, ledger=ledger
        )
        inventory = [status.to_snapshot() for status in statuses]

    return reconcile(
        snapshot.orders,
        snapshot.serialized_units,
        snapshot.sales,
        inventory,
        snapshot.price_list,
        as_of=as_of,
        ledger=ledger,
    )
