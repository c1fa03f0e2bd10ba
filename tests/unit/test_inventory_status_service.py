"""
Unit tests for inventory status derivation.
"""

from datetime import date
from decimal import Decimal

import pytest

from services.inventory_status_service import (
    derive_inventory_status,
    weekly_run_rate,
    weeks_of_inventory,
)
from services.normalizer_service import normalize_snapshot
from tests.factories import OrderFactory, SaleFactory, SerializedUnitFactory


@pytest.fixture
def statuses(raw_snapshot, as_of):
    snapshot, _ = normalize_snapshot(raw_snapshot)
    result = derive_inventory_status(
        snapshot.orders, snapshot.serialized_units, snapshot.sales, as_of=as_of
    )
    return {s.mtm: s for s in result}


# ===================
# HELPERS
# ===================

class TestVelocityHelpers:
    """Tests for weekly_run_rate and weeks_of_inventory."""

    def test_run_rate(self):
        assert weekly_run_rate(90, 90) == Decimal("7.00")
        assert weekly_run_rate(1, 90) == Decimal("0.08")
        assert weekly_run_rate(0, 90) == Decimal("0")

    def test_weeks_of_inventory(self):
        # 7 units/week, 20 on hand -> 2.86 weeks
        assert weeks_of_inventory(20, 90, 90) == 2
        assert weeks_of_inventory(2, 1, 90) == 25

    def test_weeks_of_inventory_none(self):
        assert weeks_of_inventory(0, 10, 90) is None
        assert weeks_of_inventory(-3, 10, 90) is None
        assert weeks_of_inventory(5, 0, 90) is None


# ===================
# DERIVATION
# ===================

class TestDeriveInventoryStatus:
    """Tests for derive_inventory_status over the shared snapshot."""

    def test_quantities(self, statuses):
        m1 = statuses["M1"]

        assert m1.total_shipped_qty == 8
        assert m1.total_arrived_qty == 3
        assert m1.total_sold_qty == 1
        assert m1.total_serialized_qty == 3
        assert m1.arrived_serialized_qty == 3
        assert m1.otw_serialized_qty == 0
        assert m1.on_hand_qty == 2
        assert m1.unaccounted_qty == 0
        assert m1.on_the_way_qty == 5

    def test_values(self, statuses):
        m1 = statuses["M1"]

        assert m1.on_the_way_value == Decimal("500")
        assert m1.average_fob_cost == Decimal("100.00")
        assert m1.average_landing_cost == Decimal("110.00")
        assert m1.on_hand_value == Decimal("200.00")

    def test_velocity_and_dates(self, statuses):
        m1 = statuses["M1"]

        assert m1.weekly_run_rate == Decimal("0.08")
        assert m1.weeks_of_inventory == 25
        assert m1.last_arrival_date == date(2024, 3, 11)
        assert m1.days_since_last_arrival == 20
        assert m1.days_since_last_sale == 5

    def test_no_sales(self, statuses):
        m2 = statuses["M2"]

        assert m2.on_hand_qty == 2
        assert m2.weeks_of_inventory is None
        assert m2.days_since_last_sale is None
        assert m2.weekly_run_rate == Decimal("0")

    def test_unaccounted_when_sale_has_no_serial(self, as_of):
        orders = [OrderFactory.build(salesOrder="SO1", mtm="M1", qty=2, actualArrival="2024-03-01")]
        units = [
            SerializedUnitFactory.build(salesOrder="SO1", mtm="M1", serialNumber="S-1"),
            SerializedUnitFactory.build(salesOrder="SO1", mtm="M1", serialNumber="S-2"),
        ]
        sales = [SaleFactory.build(productId="M1", quantity=1, serialNumber="")]

        (status,) = derive_inventory_status(orders, units, sales, as_of=as_of)

        # arrived 2 - sold 1 - on hand 2
        assert status.unaccounted_qty == -1

    def test_unarrived_units_are_otw_serialized(self, as_of):
        orders = [OrderFactory.build(salesOrder="SO1", mtm="M1", qty=2, actualArrival="")]
        units = [SerializedUnitFactory.build(salesOrder="SO1", mtm="M1", serialNumber="S-1")]

        (status,) = derive_inventory_status(orders, units, [], as_of=as_of)

        assert status.otw_serialized_qty == 1
        assert status.arrived_serialized_qty == 0
        assert status.on_hand_qty == 0
        assert status.on_the_way_qty == 2

    def test_units_without_order_are_excluded(self, as_of):
        orders = [OrderFactory.build(salesOrder="SO1", mtm="M1", qty=1, actualArrival="2024-03-01")]
        units = [
            SerializedUnitFactory.build(salesOrder="SO1", mtm="M1", serialNumber="A"),
            SerializedUnitFactory.build(salesOrder="SO-ORPHAN", mtm="M1", serialNumber="B"),
        ]

        (status,) = derive_inventory_status(orders, units, [], as_of=as_of)

        assert status.otw_serialized_qty == 0
        assert status.total_serialized_qty == 1
        assert status.arrived_serialized_qty == 1
        assert status.on_hand_qty == 1
        assert status.unaccounted_qty == 0

    def test_nothing_shipped(self, as_of):
        orders = [OrderFactory.build(salesOrder="SO1", mtm="M1", qty=0, orderValue="0")]

        (status,) = derive_inventory_status(orders, [], [], as_of=as_of)

        assert status.average_fob_cost == Decimal("0")
        assert status.average_landing_cost == Decimal("0")

    def test_to_snapshot(self, statuses):
        row = statuses["M1"].to_snapshot(product_line="ThinkPad")

        assert row.mtm == "M1"
        assert row.on_hand_qty == 2
        assert row.on_the_way_qty == 5
        assert row.average_landing_cost == Decimal("110.00")
        assert row.weeks_of_inventory == 25
        assert row.product_line == "ThinkPad"

    def test_sorted_by_mtm(self, statuses):
        assert list(statuses) == ["M1", "M2"]
