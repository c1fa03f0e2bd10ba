"""
Reconciliation models.

Output shapes for the per-SKU view: sales-order detail rows, the augmented
SKU group, derived inventory status, sales velocity and profitability.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import Field, computed_field

from models.base import BaseSchema, RecordSchema
from models.records import InventorySnapshot


class SkuOrderKey(NamedTuple):
    """Composite join key for one mtm on one sales order."""

    sales_order: str
    mtm: str

    def __str__(self) -> str:
        return f"{self.sales_order}|{self.mtm}"


def composite_key(sales_order: str, mtm: str) -> SkuOrderKey:
    """Build the join key shared by orders, serialized units and price rows."""
    return SkuOrderKey(sales_order, mtm)


class SalesOrderDetail(RecordSchema):
    """Position of one mtm on one sales order."""

    sales_order: str = Field(..., description="Sales order number")
    shipped_qty: int = Field(..., description="Units ordered on this sales order")
    on_hand_qty: int = Field(..., description="Arrived, serialized and unsold units")
    on_the_way_qty: int = Field(..., description="Units on orders not yet arrived")
    color: str = Field(default="", description="Colour from price list or ledger")
    arrival_date: Optional[date] = Field(None, description="Most recent actual arrival")
    ageing_days: Optional[int] = Field(None, description="Days since arrival_date")


class AugmentedSkuGroup(RecordSchema):
    """Reconciled view of one mtm."""

    mtm: str = Field(..., description="Machine-Type-Model")
    model_name: str = Field(default="", description="Model name")
    product_line: str = Field(default="N/A", description="Product line")
    description: str = Field(default="", description="Price list description")
    specification: str = Field(default="", description="Hardware specification")

    # Price list
    sdp: Decimal = Field(default=Decimal("0"), description="Standard dealer price")
    srp: Decimal = Field(default=Decimal("0"), description="Suggested retail price")

    # Inventory snapshot
    on_hand_qty: int = Field(default=0, description="Snapshot on-hand units (negative = oversold)")
    on_the_way_qty: int = Field(default=0, description="Snapshot on-the-way units")
    on_hand_value: Decimal = Field(default=Decimal("0"))
    on_the_way_value: Decimal = Field(default=Decimal("0"))
    average_landing_cost: Decimal = Field(default=Decimal("0"))
    weeks_of_inventory: Optional[int] = Field(None)

    # Profitability
    sdp_margin: Optional[Decimal] = Field(None, description="(sdp - cost) / sdp * 100")
    srp_margin: Optional[Decimal] = Field(None, description="(srp - sdp) / srp * 100")
    sdp_profit: Optional[Decimal] = Field(None, description="sdp - cost")
    srp_profit: Optional[Decimal] = Field(None, description="srp - sdp")

    # Sales
    sales_90d: int = Field(default=0, description="Units sold in the trailing window")
    weekly_sales: List[int] = Field(
        default_factory=list, description="Weekly units, oldest to newest"
    )

    # Ledger
    sales_order_details: List[SalesOrderDetail] = Field(default_factory=list)
    ledger_on_hand_qty: int = Field(default=0, description="Sum of detail on-hand units")
    ledger_on_the_way_qty: int = Field(default=0, description="Sum of detail on-the-way units")

    @computed_field
    @property
    def oversold(self) -> bool:
        """Snapshot reports more units out than in."""
        return self.on_hand_qty < 0


class SalesMetrics(RecordSchema):
    """Trailing sales velocity for one mtm."""

    mtm: str
    last_30d: int = 0
    prev_30d: int = 0
    total_90d: int = 0
    affected_customers: int = 0


class InventoryStatus(RecordSchema):
    """Inventory position derived from orders, ledger and sales."""

    mtm: str
    model_name: str = ""
    total_shipped_qty: int = 0
    total_arrived_qty: int = 0
    total_sold_qty: int = 0
    total_serialized_qty: int = 0
    arrived_serialized_qty: int = 0
    otw_serialized_qty: int = 0
    on_hand_qty: int = 0
    unaccounted_qty: int = Field(
        default=0, description="Arrived - sold - on hand; non-zero means the ledger and sales disagree"
    )
    on_the_way_qty: int = 0
    on_the_way_value: Decimal = Decimal("0")
    on_hand_value: Decimal = Decimal("0")
    average_landing_cost: Decimal = Decimal("0")
    average_fob_cost: Decimal = Decimal("0")
    weekly_run_rate: Decimal = Decimal("0")
    weeks_of_inventory: Optional[int] = None
    last_arrival_date: Optional[date] = None
    days_since_last_arrival: Optional[int] = None
    days_since_last_sale: Optional[int] = None

    def to_snapshot(self, product_line: Optional[str] = None) -> InventorySnapshot:
        """Express this status as an inventory snapshot row."""
        return InventorySnapshot(
            mtm=self.mtm,
            on_hand_qty=self.on_hand_qty,
            on_the_way_qty=self.on_the_way_qty,
            on_hand_value=self.on_hand_value,
            on_the_way_value=self.on_the_way_value,
            average_landing_cost=self.average_landing_cost,
            weeks_of_inventory=self.weeks_of_inventory,
            product_line=product_line,
        )


class ProfitabilityFigures(RecordSchema):
    """Margins and unit profits for one price point."""

    sdp_margin: Optional[Decimal] = None
    srp_margin: Optional[Decimal] = None
    sdp_profit: Optional[Decimal] = None
    srp_profit: Optional[Decimal] = None


class ProductLineMargin(RecordSchema):
    """Stock-weighted SDP margin for one product line."""

    name: str
    margin: Decimal
    count: int


class ProfitabilitySummary(RecordSchema):
    """Portfolio KPIs over a set of reconciled SKUs."""

    total_inventory_value: Decimal = Decimal("0")
    weighted_avg_sdp_margin: Decimal = Decimal("0")
    total_listed_mtms: int = 0
    total_units_in_stock: int = 0
    margin_by_product_line: List[ProductLineMargin] = Field(default_factory=list)


class ReconciliationRequest(BaseSchema):
    """Raw snapshot posted for reconciliation."""

    orders: List[Dict[str, Any]] = Field(default_factory=list)
    serialized_units: List[Dict[str, Any]] = Field(default_factory=list)
    sales: List[Dict[str, Any]] = Field(default_factory=list)
    inventory: Optional[List[Dict[str, Any]]] = Field(
        None, description="Omit to derive stock positions from orders, ledger and sales"
    )
    price_list: List[Dict[str, Any]] = Field(default_factory=list)
    as_of: Optional[date] = Field(None, description="Reference date; defaults to today")
