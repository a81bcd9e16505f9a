"""Core value types passed between pipeline stages."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, TypeAlias

Row: TypeAlias = dict[str, Any]


class InferredType(str, Enum):
    EMPTY = "empty"
    NUMBER = "number"
    DATE = "date"
    EMAIL = "email"
    PHONE = "phone"
    TEXT = "text"


class StorageType(str, Enum):
    NUMERIC = "numeric"
    TIMESTAMP = "timestamp"
    TEXT = "text"


ValidationMode: TypeAlias = Literal["structure", "rows", "full"]
MatchTier: TypeAlias = Literal["exact", "substring", "fuzzy"]


@dataclass(frozen=True)
class UploadedDataset:
    """Parsed spreadsheet: unique ordered headers plus rows keyed by header."""

    headers: list[str]
    rows: list[Row]
    source: str | None = None

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for header in self.headers:
            if header in seen:
                raise ValueError(f"Duplicate header {header!r}")
            seen.add(header)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def column_values(self, header: str) -> list[Any]:
        return [row.get(header) for row in self.rows]


@dataclass(frozen=True)
class InferredColumn:
    name: str
    inferred_type: InferredType


@dataclass(frozen=True)
class SemanticField:
    field_key: str
    display_name: str
    value_type: str = "text"
    required: bool = False
    order: int = 0
    validation_rules: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "value_type", (self.value_type or "text").strip().lower())


@dataclass(frozen=True)
class ColumnSpec:
    """One physical column of a provisioned table."""

    name: str
    storage_type: StorageType
    source_header: str


@dataclass(frozen=True)
class DynamicTableDescriptor:
    target_id: str
    table_name: str
    columns: tuple[ColumnSpec, ...]

    def column(self, name: str) -> ColumnSpec | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    @property
    def source_headers(self) -> list[str]:
        return [col.source_header for col in self.columns]


@dataclass(frozen=True)
class FieldMapping:
    source_column: str
    target_field_key: str
    confidence: float
    match: MatchTier


@dataclass(frozen=True)
class ValidationIssue:
    row_number: int
    field: str
    message: str
    kind: str


@dataclass(frozen=True)
class ValidationResult:
    total_rows: int
    valid_rows: int
    invalid_rows: int
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class AnalyticsSummary:
    total_rows: int
    total_columns: int
    headers: list[str]
    sample_rows: list[Row]
    column_types: dict[str, InferredType]
    empty_cells: int
    duplicate_rows: int


@dataclass(frozen=True)
class LoadResult:
    table_name: str
    rows_loaded: int
    created: bool


def sort_fields(fields: Sequence[SemanticField]) -> list[SemanticField]:
    """Fields ordered by ``order``; ties keep their declared position."""
    return sorted(fields, key=lambda f: f.order)


__all__ = [
    "AnalyticsSummary",
    "ColumnSpec",
    "DynamicTableDescriptor",
    "FieldMapping",
    "InferredColumn",
    "InferredType",
    "LoadResult",
    "MatchTier",
    "Row",
    "SemanticField",
    "StorageType",
    "UploadedDataset",
    "ValidationIssue",
    "ValidationMode",
    "ValidationResult",
    "sort_fields",
]
