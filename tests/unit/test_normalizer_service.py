"""
Unit tests for record normalization.

Malformed rows are rejected and counted without aborting the batch;
unparseable optional dates become None.
"""

import pytest
from datetime import date
from decimal import Decimal
from zoneinfo import ZoneInfo

from exceptions import SnapshotValidationError
from models.records import (
    InventorySnapshot,
    Order,
    PriceListEntry,
    SaleTransaction,
    SerializedUnit,
    ShipmentStatus,
)
from services.normalizer_service import normalize_records, normalize_snapshot
from tests.factories import (
    InventoryFactory,
    OrderFactory,
    PriceListFactory,
    SaleFactory,
    SerializedUnitFactory,
)


# ===================
# ENTITY COERCION
# ===================

class TestEntityCoercion:
    """Field coercion on the entity models."""

    def test_order_fields(self):
        order = OrderFactory.build(
            salesOrder=" SO1 ",
            qty="1,000",
            orderValue="$12,500.00",
            actualArrival="01/10/2024",
            scheduledShipDate="5-Jan-2024",
            factoryToSgpStatus="In Transit",
        )
        assert order.sales_order == "SO1"
        assert order.qty == 1000
        assert order.order_value == Decimal("12500.00")
        assert order.actual_arrival == date(2024, 1, 10)
        assert order.scheduled_ship_date == date(2024, 1, 5)
        assert order.factory_to_sgp_status == ShipmentStatus.IN_TRANSIT
        assert order.sgp_to_kh_status == ShipmentStatus.UNKNOWN
        assert order.has_arrived

    def test_order_blank_arrival_is_on_the_way(self):
        order = OrderFactory.build(actualArrival="")
        assert order.actual_arrival is None
        assert not order.has_arrived

    def test_ship_date_alias(self):
        order = OrderFactory.build(shipDate="2024-02-01")
        assert order.scheduled_ship_date == date(2024, 2, 1)

    def test_serial_alias(self):
        unit = SerializedUnit.model_validate(
            {"salesOrder": "SO1", "mtm": "M1", "fullSerializedString": "PF0001"}
        )
        assert unit.serial_number == "PF0001"

    def test_sale_product_aliases(self):
        sale = SaleTransaction.model_validate({"lenovoProductNumber": "M9", "quantity": "2"})
        assert sale.mtm == "M9"
        assert sale.quantity == 2
        assert sale.invoice_date is None

    def test_sale_return_is_negative(self):
        sale = SaleFactory.build(quantity="-1")
        assert sale.quantity == -1

    def test_inventory_negative_kept(self):
        """Oversold quantities are kept, never clamped."""
        row = InventoryFactory.build(onHandQty="-3", weeksOfInventory="4.8")
        assert row.on_hand_qty == -3
        assert row.weeks_of_inventory == 4

    def test_inventory_otw_alias(self):
        row = InventorySnapshot.model_validate({"mtm": "M1", "otwQty": 7, "otwValue": "700"})
        assert row.on_the_way_qty == 7
        assert row.on_the_way_value == Decimal("700")

    def test_price_list_aliases(self):
        entry = PriceListEntry.model_validate(
            {"mtm": "M1", "standardDealerPrice": "1,000", "suggestedRetailPrice": "1,250"}
        )
        assert entry.sdp == Decimal("1000")
        assert entry.srp == Decimal("1250")

    def test_entities_are_immutable(self):
        order = OrderFactory.build()
        with pytest.raises(Exception):
            order.qty = 5

    def test_wire_names_are_camel_case(self):
        dumped = OrderFactory.build(salesOrder="SO1").model_dump(by_alias=True)
        assert dumped["salesOrder"] == "SO1"
        assert "actualArrival" in dumped


# ===================
# NORMALIZE RECORDS
# ===================

class TestNormalizeRecords:
    """Tests for normalize_records."""

    def test_rejects_bad_rows_keeps_rest(self):
        rows = [
            OrderFactory.create(salesOrder="SO1"),
            OrderFactory.create(mtm=""),           # missing mtm
            OrderFactory.create(qty="ten"),        # non-numeric qty
            OrderFactory.create(qty="-2"),         # negative qty
            "not a row",
            OrderFactory.create(salesOrder="SO2"),
        ]
        records, report = normalize_records(Order, rows)

        assert [r.sales_order for r in records] == ["SO1", "SO2"]
        assert report.received == 6
        assert report.accepted == 2
        assert report.rejected == 4

    def test_unparseable_dates_counted_not_rejected(self):
        rows = [OrderFactory.create(actualArrival="someday", eta="2024-13-01")]
        records, report = normalize_records(Order, rows)

        assert len(records) == 1
        assert records[0].actual_arrival is None
        assert report.unparseable_dates == 2

    def test_timezone_from_argument(self):
        rows = [SaleFactory.create(invoiceDate="2024-01-10T20:00:00Z")]
        records, _ = normalize_records(SaleTransaction, rows, tz=ZoneInfo("Asia/Phnom_Penh"))
        assert records[0].invoice_date == date(2024, 1, 11)

    def test_empty(self):
        records, report = normalize_records(Order, [])
        assert records == []
        assert report.received == 0


# ===================
# NORMALIZE SNAPSHOT
# ===================

class TestNormalizeSnapshot:
    """Tests for normalize_snapshot."""

    def test_all_collections(self, raw_snapshot):
        snapshot, report = normalize_snapshot(raw_snapshot)

        assert len(snapshot.orders) == 3
        assert len(snapshot.serialized_units) == 5
        assert len(snapshot.sales) == 1
        assert len(snapshot.inventory) == 2
        assert len(snapshot.price_list) == 2
        assert report.total_rejected == 0

    def test_snake_case_collection_names(self):
        snapshot, _ = normalize_snapshot({"price_list": [PriceListFactory.create(mtm="M1")]})
        assert snapshot.price_list[0].mtm == "M1"

    def test_missing_and_unknown_collections(self):
        snapshot, report = normalize_snapshot({"orders": None, "rebates": [{"x": 1}]})
        assert snapshot.orders == []
        assert report.collections == {}

    def test_collection_not_a_list_raises(self):
        with pytest.raises(SnapshotValidationError) as exc_info:
            normalize_snapshot({"orders": {"salesOrder": "SO1"}})
        assert exc_info.value.status_code == 422
        assert exc_info.value.details["collection"] == "orders"

    def test_snapshot_not_a_dict_raises(self):
        with pytest.raises(SnapshotValidationError):
            normalize_snapshot([])

    def test_rejections_reported_per_collection(self):
        raw = {
            "serializedUnits": [
                SerializedUnitFactory.create(),
                SerializedUnitFactory.create(serialNumber=""),
            ],
        }
        _, report = normalize_snapshot(raw)
        assert report.collections["serialized_units"].rejected == 1
        assert report.total_rejected == 1
