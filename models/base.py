"""
Base schemas for all models.

Field names are snake_case in Python; on the wire they use the camelCase
names the spreadsheet API and dashboard speak.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - camelCase aliases, populate by either name
        - Allow attribute-bearing objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class RecordSchema(BaseSchema):
    """
    Base for snapshot entities and derived values.

    Instances are immutable: a snapshot is ingested once and every
    derived view is rebuilt from it, never patched in place.
    """
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
    )
