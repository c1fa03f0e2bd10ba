"""
Shared test fixtures.

Every test pins an explicit reference date, so nothing here depends on
the wall clock.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from unittest.mock import MagicMock
from datetime import date, timedelta

from tests.factories import (
    OrderFactory,
    SerializedUnitFactory,
    SaleFactory,
    InventoryFactory,
    PriceListFactory,
)


# ===================
# REFERENCE DATES
# ===================

AS_OF = date(2024, 3, 31)


@pytest.fixture
def as_of() -> date:
    """Fixed reference date for windowed and ageing calculations."""
    return AS_OF


@pytest.fixture
def days_ago(as_of):
    """
    Date helper relative to the reference date.

    Usage:
        def test_something(days_ago):
            invoice = days_ago(10)
    """
    def _days_ago(n: int) -> date:
        return as_of - timedelta(days=n)
    return _days_ago


# ===================
# SNAPSHOTS
# ===================

@pytest.fixture
def raw_snapshot(days_ago) -> dict:
    """
    A small, consistent raw snapshot as the sheets return it.

    M1: SO1 arrived (3 units, 1 sold), SO2 on the way (5 units)
    M2: SO3 arrived (2 units, none sold); inventory row says oversold
    """
    return {
        "orders": [
            OrderFactory.create(salesOrder="SO1", mtm="M1", qty=3, actualArrival=days_ago(20).isoformat(), orderValue="300"),
            OrderFactory.create(salesOrder="SO2", mtm="M1", qty=5, actualArrival="", orderValue="500"),
            OrderFactory.create(salesOrder="SO3", mtm="M2", qty=2, actualArrival=days_ago(40).isoformat(), orderValue="400"),
        ],
        "serializedUnits": [
            SerializedUnitFactory.create(salesOrder="SO1", mtm="M1", serialNumber="S-1", color="Black"),
            SerializedUnitFactory.create(salesOrder="SO1", mtm="M1", serialNumber="S-2", color="Black"),
            SerializedUnitFactory.create(salesOrder="SO1", mtm="M1", serialNumber="S-3", color="Black"),
            SerializedUnitFactory.create(salesOrder="SO3", mtm="M2", serialNumber="S-4"),
            SerializedUnitFactory.create(salesOrder="SO3", mtm="M2", serialNumber="S-5"),
        ],
        "sales": [
            SaleFactory.create(productId="M1", quantity=1, serialNumber="S-1", invoiceDate=days_ago(5).isoformat(), totalRevenue="150"),
        ],
        "inventory": [
            InventoryFactory.create(mtm="M1", onHandQty=2, onTheWayQty=5, averageLandingCost="80", productLine="ThinkPad"),
            InventoryFactory.create(mtm="M2", onHandQty=-1, onTheWayQty=0, averageLandingCost="150", productLine="ThinkCentre"),
        ],
        "priceList": [
            PriceListFactory.create(mtm="M1", modelName="ThinkPad E14", sdp="100", srp="125"),
            PriceListFactory.create(mtm="M2", modelName="ThinkCentre M70", sdp="200", srp="0"),
        ],
    }


# ===================
# MOCK SHEETS CLIENT
# ===================

@pytest.fixture
def mock_sheets_client(raw_snapshot):
    """
    Sheets client that serves raw_snapshot without network access.

    Usage:
        def test_something(mock_sheets_client):
            mock_sheets_client.fetch_snapshot.return_value = {...}
    """
    client = MagicMock()
    client.configured = True
    client.fetch_snapshot.return_value = {
        "orders": raw_snapshot["orders"],
        "serialized_units": raw_snapshot["serializedUnits"],
        "sales": raw_snapshot["sales"],
        "inventory": raw_snapshot["inventory"],
        "price_list": raw_snapshot["priceList"],
    }
    return client


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(mock_sheets_client):
    """
    Create FastAPI test client backed by the mock sheets client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/reconciliation/sku-groups")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    import services.snapshot_service as module
    from main import app

    module._snapshot_service = module.SnapshotService(client=mock_sheets_client)
    yield TestClient(app)
    module._snapshot_service = None
