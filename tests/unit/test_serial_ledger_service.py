"""
Unit tests for serial ledger matching.

Each unit is on hand, sold or in transit, decided only from the current
sales and arrival sets.
"""

import random

from services.serial_ledger_service import (
    UnitStatus,
    build_serial_ledger,
    classify_unit,
    collect_arrived_keys,
    collect_sold_serials,
)
from models.reconciliation import composite_key
from tests.factories import OrderFactory, SaleFactory, SerializedUnitFactory


def _arrived_order(so="SO1", mtm="M1", qty=10):
    return OrderFactory.build(salesOrder=so, mtm=mtm, qty=qty, actualArrival="2024-01-10")


def _otw_order(so="SO2", mtm="M1", qty=5):
    return OrderFactory.build(salesOrder=so, mtm=mtm, qty=qty, actualArrival="")


def _unit(so, mtm, serial):
    return SerializedUnitFactory.build(salesOrder=so, mtm=mtm, serialNumber=serial)


def _sale(serial, mtm="M1"):
    return SaleFactory.build(productId=mtm, serialNumber=serial)


# ===================
# SETS
# ===================

class TestCollectSets:
    """Tests for collect_sold_serials and collect_arrived_keys."""

    def test_sold_serials_skip_null(self):
        sales = [_sale("S-1"), _sale(""), _sale("S-2")]
        assert collect_sold_serials(sales) == frozenset({"S-1", "S-2"})

    def test_arrived_keys(self):
        orders = [_arrived_order("SO1"), _otw_order("SO2")]
        assert collect_arrived_keys(orders) == frozenset({composite_key("SO1", "M1")})

    def test_key_string_form(self):
        assert str(composite_key("SO1", "M1")) == "SO1|M1"


# ===================
# CLASSIFICATION
# ===================

class TestClassifyUnit:
    """Tests for classify_unit."""

    def test_statuses(self):
        arrived = frozenset({composite_key("SO1", "M1")})
        sold = frozenset({"S-1"})

        assert classify_unit(_unit("SO1", "M1", "S-1"), sold, arrived) == UnitStatus.SOLD
        assert classify_unit(_unit("SO1", "M1", "S-2"), sold, arrived) == UnitStatus.ON_HAND
        assert classify_unit(_unit("SO2", "M1", "S-3"), sold, arrived) == UnitStatus.IN_TRANSIT

    def test_unarrived_unit_with_sold_serial_is_in_transit(self):
        arrived = frozenset()
        sold = frozenset({"S-1"})
        assert classify_unit(_unit("SO1", "M1", "S-1"), sold, arrived) == UnitStatus.IN_TRANSIT


# ===================
# LEDGER
# ===================

class TestBuildSerialLedger:
    """Tests for build_serial_ledger."""

    def test_one_sold_one_on_hand(self):
        """Arrived order with two units, one sold: one on hand."""
        orders = [_arrived_order("SO1", "M1", qty=10)]
        units = [_unit("SO1", "M1", "S-1"), _unit("SO1", "M1", "S-2")]
        sales = [_sale("S-1")]

        ledger = build_serial_ledger(orders, units, sales)

        assert ledger.on_hand("SO1", "M1") == 1
        assert ledger.sold_by_key[composite_key("SO1", "M1")] == 1

    def test_unarrived_units_excluded(self):
        orders = [_otw_order("SO2", "M1")]
        units = [_unit("SO2", "M1", "S-1")]

        ledger = build_serial_ledger(orders, units, [])

        assert ledger.on_hand("SO2", "M1") == 0
        assert ledger.arrived_by_key == {}

    def test_unit_without_order_is_unattributed(self):
        orders = [_arrived_order("SO1", "M1")]
        units = [_unit("SO9", "M1", "S-1"), _unit("SO1", "M1", "S-2")]

        ledger = build_serial_ledger(orders, units, [])

        assert ledger.unattributed_units == 1
        assert ledger.on_hand("SO9", "M1") == 0
        assert ledger.on_hand("SO1", "M1") == 1

    def test_sale_serial_not_in_ledger_has_no_effect(self):
        orders = [_arrived_order("SO1", "M1")]
        units = [_unit("SO1", "M1", "S-1")]

        ledger = build_serial_ledger(orders, units, [_sale("UNKNOWN")])

        assert ledger.on_hand("SO1", "M1") == 1

    def test_on_hand_plus_sold_equals_arrived(self):
        """on_hand(key) + sold(key) == arrived units(key) for every key."""
        rng = random.Random(7)
        orders = [
            _arrived_order("SO1", "M1"),
            _arrived_order("SO2", "M2"),
            _otw_order("SO3", "M1"),
        ]
        keys = [("SO1", "M1"), ("SO2", "M2"), ("SO3", "M1")]
        units = [_unit(*rng.choice(keys), f"S-{i}") for i in range(60)]
        sales = [_sale(f"S-{i}") for i in range(0, 60, 3)]

        ledger = build_serial_ledger(orders, units, sales)

        for key in ledger.arrived_keys:
            assert (
                ledger.on_hand_by_key.get(key, 0) + ledger.sold_by_key.get(key, 0)
                == ledger.arrived_by_key.get(key, 0)
            )
        expected_arrived = sum(
            1 for u in units if (u.sales_order, u.mtm) in {("SO1", "M1"), ("SO2", "M2")}
        )
        assert sum(ledger.arrived_by_key.values()) == expected_arrived

    def test_order_independent(self):
        orders = [_arrived_order("SO1", "M1"), _otw_order("SO2", "M1")]
        units = [_unit("SO1", "M1", f"S-{i}") for i in range(10)]
        sales = [_sale("S-1"), _sale("S-4")]

        first = build_serial_ledger(orders, units, sales)
        shuffled_units = units[:]
        random.Random(3).shuffle(shuffled_units)
        second = build_serial_ledger(list(reversed(orders)), shuffled_units, list(reversed(sales)))

        assert first == second
