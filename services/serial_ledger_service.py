"""
Serial ledger matching.

Classifies each serialized unit against the current snapshot:

- SOLD: its serial appears on a sale
- ON_HAND: its sales order line has arrived and it is not sold
- IN_TRANSIT: its sales order line has not arrived

Classification only reads sets built up front, so a unit is never counted
twice and the result depends only on the snapshot.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable

import structlog

from models.records import Order, SaleTransaction, SerializedUnit
from models.reconciliation import SkuOrderKey, composite_key

logger = structlog.get_logger(__name__)


class UnitStatus(str, Enum):
    """Where a serialized unit currently is."""

    ON_HAND = "on_hand"
    SOLD = "sold"
    IN_TRANSIT = "in_transit"


@dataclass(frozen=True)
class SerialLedger:
    """
    Result of matching the unit ledger against orders and sales.

    Attributes:
        sold_serials: Every non-null serial number found on a sale
        arrived_keys: Keys with at least one arrived order line
        ordered_keys: Keys with any order line at all
        on_hand_by_key: Arrived, unsold units per key
        sold_by_key: Arrived, sold units per key
        arrived_by_key: Arrived units per key
        unattributed_units: Units whose key matches no order
    """

    sold_serials: FrozenSet[str] = frozenset()
    arrived_keys: FrozenSet[SkuOrderKey] = frozenset()
    ordered_keys: FrozenSet[SkuOrderKey] = frozenset()
    on_hand_by_key: Dict[SkuOrderKey, int] = field(default_factory=dict)
    sold_by_key: Dict[SkuOrderKey, int] = field(default_factory=dict)
    arrived_by_key: Dict[SkuOrderKey, int] = field(default_factory=dict)
    unattributed_units: int = 0

    def on_hand(self, sales_order: str, mtm: str) -> int:
        return self.on_hand_by_key.get(composite_key(sales_order, mtm), 0)


def collect_sold_serials(sales: Iterable[SaleTransaction]) -> FrozenSet[str]:
    """Serial numbers that appear on any sale."""
    return frozenset(s.serial_number for s in sales if s.serial_number)


def collect_arrived_keys(orders: Iterable[Order]) -> FrozenSet[SkuOrderKey]:
    """Keys with at least one order line carrying an actual arrival date."""
    return frozenset(
        composite_key(o.sales_order, o.mtm) for o in orders if o.has_arrived
    )


def classify_unit(
    unit: SerializedUnit,
    sold_serials: FrozenSet[str],
    arrived_keys: FrozenSet[SkuOrderKey],
) -> UnitStatus:
    """
    Classify one unit against the sold and arrived sets.

    Arrival is checked first: a unit whose line has not arrived is in
    transit even if its serial already shows up on a sale.
    """
    if composite_key(unit.sales_order, unit.mtm) not in arrived_keys:
        return UnitStatus.IN_TRANSIT
    if unit.serial_number in sold_serials:
        return UnitStatus.SOLD
    return UnitStatus.ON_HAND


def build_serial_ledger(
    orders: Iterable[Order],
    units: Iterable[SerializedUnit],
    sales: Iterable[SaleTransaction],
) -> SerialLedger:
    """
    Match serialized units against orders and sales.

    Algorithm:
    1. sold_serials = all non-null sale serials
    2. arrived_keys = keys with an arrived order line
    3. For each unit on an arrived key: on hand unless its serial is sold

    Units on keys that have not arrived are left out of on-hand counts;
    in-transit quantities come from the orders themselves.
    O(orders + sales + units).
    """
    orders = list(orders)
    sold_serials = collect_sold_serials(sales)
    arrived_keys = collect_arrived_keys(orders)
    ordered_keys = frozenset(composite_key(o.sales_order, o.mtm) for o in orders)

    on_hand: Counter = Counter()
    sold: Counter = Counter()
    arrived: Counter = Counter()
    unattributed = 0

    for unit in units:
        key = composite_key(unit.sales_order, unit.mtm)
        if key not in ordered_keys:
            unattributed += 1
            continue
        if key not in arrived_keys:
            continue
        arrived[key] += 1
        if unit.serial_number in sold_serials:
            sold[key] += 1
        else:
            on_hand[key] += 1

    if unattributed:
        logger.warning("unattributed_serialized_units", count=unattributed)

    logger.debug(
        "serial_ledger_built",
        sold_serials=len(sold_serials),
        arrived_keys=len(arrived_keys),
        on_hand_units=sum(on_hand.values()),
    )

    return SerialLedger(
        sold_serials=sold_serials,
        arrived_keys=arrived_keys,
        ordered_keys=ordered_keys,
        on_hand_by_key=dict(on_hand),
        sold_by_key=dict(sold),
        arrived_by_key=dict(arrived),
        unattributed_units=unattributed,
    )
