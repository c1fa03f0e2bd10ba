"""
Record normalization for snapshot collections.

Turns raw spreadsheet rows into canonical entities. Rows that cannot be
coerced (missing mtm, non-numeric quantity) are rejected and counted;
the rest of the batch always goes through.
"""

from datetime import tzinfo
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

import structlog
from pydantic import ValidationError as PydanticValidationError

from config import get_settings
from exceptions import SnapshotValidationError
from models.base import RecordSchema
from models.records import (
    CollectionReport,
    InventorySnapshot,
    NormalizationReport,
    Order,
    PriceListEntry,
    SaleTransaction,
    SerializedUnit,
    Snapshot,
)
from utils.coercion import is_blank

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=RecordSchema)

# Snapshot collection name -> entity model
COLLECTIONS: Dict[str, Type[RecordSchema]] = {
    "orders": Order,
    "serialized_units": SerializedUnit,
    "sales": SaleTransaction,
    "inventory": InventorySnapshot,
    "price_list": PriceListEntry,
}

# Wire names accepted for each collection
COLLECTION_ALIASES: Dict[str, str] = {
    "orders": "orders",
    "serializedUnits": "serialized_units",
    "serialized_units": "serialized_units",
    "sales": "sales",
    "inventory": "inventory",
    "priceList": "price_list",
    "price_list": "price_list",
}


def _raw_value(model: Type[RecordSchema], row: dict, field_name: str) -> Any:
    """Look a field up in a raw row by any of its accepted names."""
    field = model.model_fields[field_name]
    candidates = [field_name]
    if field.alias:
        candidates.append(field.alias)
    if field.validation_alias is not None:
        choices = getattr(field.validation_alias, "choices", [field.validation_alias])
        candidates.extend(c for c in choices if isinstance(c, str))
    for name in candidates:
        if name in row:
            return row[name]
    return None


def count_unparseable_dates(model: Type[RecordSchema], row: dict, record: RecordSchema) -> int:
    """Count date cells that held text but did not parse."""
    missed = 0
    for field_name in getattr(model, "DATE_FIELDS", ()):
        if getattr(record, field_name) is None and not is_blank(_raw_value(model, row, field_name)):
            missed += 1
    return missed


def normalize_records(
    model: Type[RecordT],
    rows: Iterable[Any],
    tz: Optional[tzinfo] = None,
    collection: Optional[str] = None,
) -> Tuple[List[RecordT], CollectionReport]:
    """
    Validate raw rows into entities of ``model``.

    Args:
        model: Entity model to build
        rows: Raw rows (dicts) from the data source
        tz: Time zone dates are resolved in (defaults to settings)
        collection: Name used in log events

    Returns:
        (accepted records, collection report)
    """
    tz = tz or get_settings().tz
    name = collection or model.__name__
    records: List[RecordT] = []
    received = rejected = unparseable = 0

    for index, row in enumerate(rows):
        received += 1
        if not isinstance(row, dict):
            rejected += 1
            logger.warning("record_rejected", collection=name, row=index, reason="not an object")
            continue
        try:
            record = model.model_validate(row, context={"tz": tz})
        except PydanticValidationError as e:
            rejected += 1
            logger.warning(
                "record_rejected",
                collection=name,
                row=index,
                fields=[".".join(str(p) for p in err["loc"]) for err in e.errors()],
            )
            continue

        missed = count_unparseable_dates(model, row, record)
        if missed:
            unparseable += missed
            logger.debug("unparseable_date", collection=name, row=index, count=missed)
        records.append(record)

    report = CollectionReport(
        received=received,
        accepted=len(records),
        rejected=rejected,
        unparseable_dates=unparseable,
    )
    return records, report


def normalize_snapshot(
    raw: Dict[str, Any],
    tz: Optional[tzinfo] = None,
) -> Tuple[Snapshot, NormalizationReport]:
    """
    Normalize every collection of a raw snapshot.

    Missing collections are treated as empty.

    Raises:
        SnapshotValidationError: If a collection is present but is not a list
    """
    if not isinstance(raw, dict):
        raise SnapshotValidationError("Snapshot must be an object of collections")

    tz = tz or get_settings().tz
    collected: Dict[str, List[RecordSchema]] = {name: [] for name in COLLECTIONS}
    reports: Dict[str, CollectionReport] = {}

    for key, rows in raw.items():
        name = COLLECTION_ALIASES.get(key)
        if name is None or rows is None:
            continue
        if not isinstance(rows, list):
            raise SnapshotValidationError(
                f"Collection '{key}' must be a list of records",
                details={"collection": key, "type": type(rows).__name__},
            )
        records, report = normalize_records(COLLECTIONS[name], rows, tz=tz, collection=name)
        collected[name].extend(records)
        reports[name] = report

    snapshot = Snapshot(**collected)
    report = NormalizationReport(collections=reports)

    logger.info(
        "snapshot_normalized",
        orders=len(snapshot.orders),
        serialized_units=len(snapshot.serialized_units),
        sales=len(snapshot.sales),
        inventory=len(snapshot.inventory),
        price_list=len(snapshot.price_list),
        rejected=report.total_rejected,
    )
    return snapshot, report
