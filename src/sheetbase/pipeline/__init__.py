"""Pure, in-process pipeline stages (no I/O besides the template writer)."""

from sheetbase.pipeline.analytics import summarize_dataset
from sheetbase.pipeline.inference import infer_columns, infer_type
from sheetbase.pipeline.mapping import FieldMappingResolver, apply_mappings
from sheetbase.pipeline.validate import check_rows, check_structure, validate_dataset

__all__ = [
    "FieldMappingResolver",
    "apply_mappings",
    "check_rows",
    "check_structure",
    "infer_columns",
    "infer_type",
    "summarize_dataset",
    "validate_dataset",
]
