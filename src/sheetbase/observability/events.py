"""Event payload schemas for sheetbase logging.

Payload models are strict (``extra="forbid"``) and validated with
``model_validate(..., strict=True)`` whenever an event with a registered schema
is emitted. Events without a schema are passed through unchanged.
"""

from __future__ import annotations

from typing import Annotated, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

NAMESPACE = "sheetbase"
DEFAULT_EVENT = "log"

PayloadModel: TypeAlias = type[BaseModel]

NonNegativeInt = Annotated[int, Field(ge=0)]


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class TableProvisionedPayload(StrictModel):
    target_id: str
    table_name: str
    column_count: NonNegativeInt
    created: bool


class TableLoadedPayload(StrictModel):
    table_name: str
    rows_loaded: NonNegativeInt
    batches: NonNegativeInt
    ignored_headers: list[str] = Field(default_factory=list)


class TableDroppedPayload(StrictModel):
    target_id: str
    table_name: str


class MappingSuggestedPayload(StrictModel):
    field_count: NonNegativeInt
    mapped_count: NonNegativeInt
    unmapped_fields: list[str] = Field(default_factory=list)


class ValidationCompletedPayload(StrictModel):
    mode: Literal["structure", "rows", "full"]
    total_rows: NonNegativeInt
    valid_rows: NonNegativeInt
    invalid_rows: NonNegativeInt
    error_count: NonNegativeInt
    warning_count: NonNegativeInt


EVENT_SCHEMAS: dict[str, PayloadModel] = {
    f"{NAMESPACE}.table.provisioned": TableProvisionedPayload,
    f"{NAMESPACE}.table.loaded": TableLoadedPayload,
    f"{NAMESPACE}.table.dropped": TableDroppedPayload,
    f"{NAMESPACE}.mapping.suggested": MappingSuggestedPayload,
    f"{NAMESPACE}.validation.completed": ValidationCompletedPayload,
}


__all__ = [
    "DEFAULT_EVENT",
    "EVENT_SCHEMAS",
    "NAMESPACE",
    "MappingSuggestedPayload",
    "TableDroppedPayload",
    "TableLoadedPayload",
    "TableProvisionedPayload",
    "ValidationCompletedPayload",
]
