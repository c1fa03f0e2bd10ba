"""
Canonical snapshot entities.

Each model is the typed form of one spreadsheet collection. Coercion of
loosely-typed cells (dates, numbers, blanks) happens in the validators
here, so everything downstream works on already-validated values.

Pass ``context={"tz": tzinfo}`` to ``model_validate`` to resolve dates in
a specific time zone; otherwise the configured reference zone is used.
"""

from datetime import date, tzinfo
from decimal import Decimal
from enum import Enum
from math import floor
from typing import ClassVar, Dict, List, Optional, Tuple

from pydantic import AliasChoices, Field, ValidationInfo, field_validator

from config import get_settings
from models.base import RecordSchema
from utils.coercion import clean_text, parse_date, parse_decimal, parse_int


def _context_tz(info: ValidationInfo) -> tzinfo:
    if info.context and info.context.get("tz") is not None:
        return info.context["tz"]
    return get_settings().tz


def _money(value) -> Decimal:
    parsed = parse_decimal(value)
    return parsed if parsed is not None else Decimal("0")


def _count(value) -> int:
    parsed = parse_int(value)
    return parsed if parsed is not None else 0


class ShipmentStatus(str, Enum):
    """Leg status as written in the order sheet."""

    PENDING = "pending"
    IN_PRODUCTION = "in_production"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    ARRIVED = "arrived"
    UNKNOWN = "unknown"


def _shipment_status(value) -> ShipmentStatus:
    text = clean_text(value)
    if text is None:
        return ShipmentStatus.UNKNOWN
    normalized = text.lower().replace("-", " ").replace(" ", "_")
    try:
        return ShipmentStatus(normalized)
    except ValueError:
        return ShipmentStatus.UNKNOWN


class Order(RecordSchema):
    """One purchase order line: a quantity of one mtm on one sales order."""

    DATE_FIELDS: ClassVar[Tuple[str, ...]] = (
        "date_issue_pi", "scheduled_ship_date", "eta", "actual_arrival",
    )

    sales_order: str = Field(..., min_length=1, description="Sales order number")
    mtm: str = Field(..., min_length=1, description="Machine-Type-Model")
    qty: int = Field(default=0, ge=0, description="Units ordered")
    fob_unit_price: Decimal = Field(default=Decimal("0"), description="FOB price per unit")
    landing_cost_unit_price: Decimal = Field(
        default=Decimal("0"), description="Landed cost per unit"
    )
    order_value: Decimal = Field(default=Decimal("0"), description="Line value")
    date_issue_pi: Optional[date] = Field(
        None, alias="dateIssuePI", description="Proforma invoice issue date"
    )
    scheduled_ship_date: Optional[date] = Field(
        None,
        validation_alias=AliasChoices("scheduledShipDate", "shipDate", "scheduled_ship_date"),
        description="Scheduled factory ship date",
    )
    eta: Optional[date] = Field(None, description="Estimated arrival")
    actual_arrival: Optional[date] = Field(
        None, description="Actual arrival; None while the order is on the way"
    )
    factory_to_sgp_status: ShipmentStatus = Field(
        default=ShipmentStatus.UNKNOWN, description="Factory to Singapore leg"
    )
    sgp_to_kh_status: ShipmentStatus = Field(
        default=ShipmentStatus.UNKNOWN, description="Singapore to Cambodia leg"
    )
    delivery_number: Optional[str] = None
    model_name: Optional[str] = None
    specification: Optional[str] = None

    @field_validator("sales_order", "mtm", "delivery_number", "model_name", "specification", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("qty", mode="before")
    @classmethod
    def coerce_qty(cls, v):
        return _count(v)

    @field_validator("fob_unit_price", "landing_cost_unit_price", "order_value", mode="before")
    @classmethod
    def coerce_money(cls, v):
        return _money(v)

    @field_validator(*DATE_FIELDS, mode="before")
    @classmethod
    def coerce_date(cls, v, info: ValidationInfo):
        return parse_date(v, _context_tz(info))

    @field_validator("factory_to_sgp_status", "sgp_to_kh_status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        return _shipment_status(v)

    @property
    def has_arrived(self) -> bool:
        return self.actual_arrival is not None


class SerializedUnit(RecordSchema):
    """One physical unit recorded in the serialization ledger."""

    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ()

    sales_order: str = Field(..., min_length=1)
    mtm: str = Field(..., min_length=1)
    serial_number: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("serialNumber", "fullSerializedString", "serial_number"),
    )
    color: Optional[str] = None

    @field_validator("sales_order", "mtm", "serial_number", "color", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)


class SaleTransaction(RecordSchema):
    """One invoiced sale line."""

    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ("invoice_date",)

    invoice_date: Optional[date] = None
    product_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("productId", "lenovoProductNumber", "mtm", "product_id"),
        description="mtm of the product sold",
    )
    quantity: int = Field(default=0, description="Units; negative for returns")
    total_revenue: Decimal = Field(default=Decimal("0"))
    serial_number: Optional[str] = None
    sales_order: Optional[str] = None
    buyer_id: Optional[str] = None
    buyer_name: Optional[str] = None
    segment: Optional[str] = None

    @field_validator(
        "product_id", "serial_number", "sales_order", "buyer_id", "buyer_name", "segment",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v):
        return _count(v)

    @field_validator("total_revenue", mode="before")
    @classmethod
    def coerce_money(cls, v):
        return _money(v)

    @field_validator("invoice_date", mode="before")
    @classmethod
    def coerce_date(cls, v, info: ValidationInfo):
        return parse_date(v, _context_tz(info))

    @property
    def mtm(self) -> str:
        return self.product_id


class InventorySnapshot(RecordSchema):
    """
    Stock position for one mtm as exported by the inventory sheet.

    Quantities may be negative when more units were sold than received;
    they are kept as-is so the oversold condition stays visible.
    """

    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ()

    mtm: str = Field(..., min_length=1)
    on_hand_qty: int = Field(
        default=0, validation_alias=AliasChoices("onHandQty", "on_hand_qty")
    )
    on_the_way_qty: int = Field(
        default=0, validation_alias=AliasChoices("onTheWayQty", "otwQty", "on_the_way_qty")
    )
    on_hand_value: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("onHandValue", "on_hand_value")
    )
    on_the_way_value: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("onTheWayValue", "otwValue", "on_the_way_value"),
    )
    average_landing_cost: Decimal = Field(default=Decimal("0"))
    weeks_of_inventory: Optional[int] = Field(
        None, description="None when there is no sales history to compute velocity"
    )
    product_line: Optional[str] = None
    specification: Optional[str] = None

    @field_validator("mtm", "product_line", "specification", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("on_hand_qty", "on_the_way_qty", mode="before")
    @classmethod
    def coerce_qty(cls, v):
        return _count(v)

    @field_validator("on_hand_value", "on_the_way_value", "average_landing_cost", mode="before")
    @classmethod
    def coerce_money(cls, v):
        return _money(v)

    @field_validator("weeks_of_inventory", mode="before")
    @classmethod
    def coerce_weeks(cls, v):
        weeks = parse_decimal(v)
        return None if weeks is None else floor(weeks)


class PriceListEntry(RecordSchema):
    """One price list row; a row may name the sales order and colour it lists."""

    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ()

    mtm: str = Field(..., min_length=1)
    model_name: Optional[str] = None
    description: Optional[str] = None
    sdp: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("sdp", "standardDealerPrice"),
        description="Standard dealer price",
    )
    srp: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("srp", "suggestedRetailPrice"),
        description="Suggested retail price",
    )
    sales_order: Optional[str] = None
    color: Optional[str] = None

    @field_validator("mtm", "model_name", "description", "sales_order", "color", mode="before")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("sdp", "srp", mode="before")
    @classmethod
    def coerce_money(cls, v):
        return _money(v)


class Snapshot(RecordSchema):
    """All collections of one data refresh, already normalized."""

    orders: List[Order] = Field(default_factory=list)
    serialized_units: List[SerializedUnit] = Field(default_factory=list)
    sales: List[SaleTransaction] = Field(default_factory=list)
    inventory: List[InventorySnapshot] = Field(default_factory=list)
    price_list: List[PriceListEntry] = Field(default_factory=list)


class CollectionReport(RecordSchema):
    """Ingestion outcome for one collection."""

    received: int = 0
    accepted: int = 0
    rejected: int = 0
    unparseable_dates: int = 0


class NormalizationReport(RecordSchema):
    """Per-collection ingestion outcome for a snapshot."""

    collections: Dict[str, CollectionReport] = Field(default_factory=dict)

    @property
    def total_rejected(self) -> int:
        return sum(c.rejected for c in self.collections.values())
