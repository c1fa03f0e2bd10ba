"""
Pydantic models for validation and serialization.

Records are the canonical snapshot entities; reconciliation and trend
models are the derived views built from them.
"""

from models.base import BaseSchema, RecordSchema
from models.records import (
    ShipmentStatus,
    Order,
    SerializedUnit,
    SaleTransaction,
    InventorySnapshot,
    PriceListEntry,
    Snapshot,
    CollectionReport,
    NormalizationReport,
)
from models.reconciliation import (
    SkuOrderKey,
    composite_key,
    SalesOrderDetail,
    AugmentedSkuGroup,
    SalesMetrics,
    InventoryStatus,
    ProfitabilityFigures,
    ProductLineMargin,
    ProfitabilitySummary,
    ReconciliationRequest,
)
from models.trends import (
    Granularity,
    TrendDirection,
    TrendStrength,
    TrendPoint,
    TrendStatistics,
    TrendRecord,
    TrendRequest,
    TrendResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "RecordSchema",
    # Records
    "ShipmentStatus",
    "Order",
    "SerializedUnit",
    "SaleTransaction",
    "InventorySnapshot",
    "PriceListEntry",
    "Snapshot",
    "CollectionReport",
    "NormalizationReport",
    # Reconciliation
    "SkuOrderKey",
    "composite_key",
    "SalesOrderDetail",
    "AugmentedSkuGroup",
    "SalesMetrics",
    "InventoryStatus",
    "ProfitabilityFigures",
    "ProductLineMargin",
    "ProfitabilitySummary",
    "ReconciliationRequest",
    # Trends
    "Granularity",
    "TrendDirection",
    "TrendStrength",
    "TrendPoint",
    "TrendStatistics",
    "TrendRecord",
    "TrendRequest",
    "TrendResponse",
]
