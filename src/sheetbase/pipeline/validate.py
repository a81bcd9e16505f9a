from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import get_args

from sheetbase.models import (
    SemanticField,
    UploadedDataset,
    ValidationIssue,
    ValidationMode,
    ValidationResult,
)
from sheetbase.observability.logger import EventLogger, NullLogger
from sheetbase.pipeline.values import is_blank

VALIDATION_MODES: tuple[str, ...] = get_args(ValidationMode)


def check_structure(fields: Sequence[SemanticField], headers: Sequence[str]) -> list[ValidationIssue]:
    """One ``missing_header`` error per required field absent from ``headers``."""
    present = set(headers)
    return [
        ValidationIssue(
            row_number=0,
            field=field.field_key,
            message=f"Required column '{field.display_name}' ({field.field_key}) is missing from the headers",
            kind="missing_header",
        )
        for field in fields
        if field.required and field.field_key not in present
    ]


def check_rows(
    fields: Sequence[SemanticField],
    dataset: UploadedDataset,
) -> tuple[list[ValidationIssue], list[ValidationIssue], int]:
    """Per-row completeness. Returns ``(errors, warnings, invalid_row_count)``."""
    required = [f for f in fields if f.required]
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    invalid = 0

    for row_number, row in enumerate(dataset.rows, start=1):
        row_failed = False
        for field in required:
            if field.field_key not in row:
                row_failed = True
                errors.append(
                    ValidationIssue(
                        row_number=row_number,
                        field=field.field_key,
                        message=f"Required field '{field.display_name}' is missing",
                        kind="required",
                    )
                )
            elif is_blank(row[field.field_key]):
                warnings.append(
                    ValidationIssue(
                        row_number=row_number,
                        field=field.field_key,
                        message=f"Required field '{field.display_name}' is blank",
                        kind="blank_required",
                    )
                )
        if row_failed:
            invalid += 1

    return errors, warnings, invalid


def validate_dataset(
    fields: Sequence[SemanticField],
    dataset: UploadedDataset,
    mode: ValidationMode = "full",
    *,
    logger: EventLogger | None = None,
) -> ValidationResult:
    if mode not in VALIDATION_MODES:
        raise ValueError(f"Unknown validation mode {mode!r}; expected one of {', '.join(VALIDATION_MODES)}")

    logger = logger if logger is not None else NullLogger()
    total = dataset.row_count
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    invalid = 0

    structural_failed = False
    if mode in ("structure", "full"):
        structural = check_structure(fields, dataset.headers)
        structural_failed = bool(structural)
        errors.extend(structural)

    if mode in ("rows", "full"):
        row_errors, row_warnings, invalid = check_rows(fields, dataset)
        errors.extend(row_errors)
        warnings.extend(row_warnings)

    if structural_failed:
        invalid = total

    result = ValidationResult(
        total_rows=total,
        valid_rows=total - invalid,
        invalid_rows=invalid,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )

    logger.event(
        "validation.completed",
        level=logging.INFO if result.is_valid else logging.WARNING,
        data={
            "mode": mode,
            "total_rows": result.total_rows,
            "valid_rows": result.valid_rows,
            "invalid_rows": result.invalid_rows,
            "error_count": len(result.errors),
            "warning_count": len(result.warnings),
        },
    )
    return result


__all__ = ["VALIDATION_MODES", "check_rows", "check_structure", "validate_dataset"]
