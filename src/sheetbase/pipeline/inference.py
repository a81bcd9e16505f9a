"""Column type inference.

Each column is classified by an ordered list of ``(type, predicate)`` rules.
The first rule whose predicate holds for *every* non-blank value wins, so a
single disqualifying value pushes the column down the list (usually to
``text``). Blank-only columns are ``empty``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from sheetbase.models import InferredColumn, InferredType, UploadedDataset
from sheetbase.pipeline.values import cell_text, is_blank, parse_date, parse_number

ValuePredicate = Callable[[Any], bool]

PHONE_PATTERN = re.compile(r"^[\+]?[1-9][\d]{0,15}$")


def _is_number(value: Any) -> bool:
    return parse_number(value) is not None


def _is_date(value: Any) -> bool:
    return parse_date(value) is not None


def _is_email(value: Any) -> bool:
    text = cell_text(value)
    return "@" in text and "." in text


def _is_phone(value: Any) -> bool:
    return PHONE_PATTERN.match(cell_text(value).strip()) is not None


INFERENCE_RULES: tuple[tuple[InferredType, ValuePredicate], ...] = (
    (InferredType.NUMBER, _is_number),
    (InferredType.DATE, _is_date),
    (InferredType.EMAIL, _is_email),
    (InferredType.PHONE, _is_phone),
)


def infer_type(
    values: Iterable[Any],
    *,
    rules: Sequence[tuple[InferredType, ValuePredicate]] = INFERENCE_RULES,
) -> InferredType:
    present = [v for v in values if not is_blank(v)]
    if not present:
        return InferredType.EMPTY

    for inferred, predicate in rules:
        if all(predicate(v) for v in present):
            return inferred
    return InferredType.TEXT


def infer_columns(dataset: UploadedDataset) -> list[InferredColumn]:
    """Infer one type per header, in header order."""
    return [
        InferredColumn(name=header, inferred_type=infer_type(dataset.column_values(header)))
        for header in dataset.headers
    ]


__all__ = ["INFERENCE_RULES", "PHONE_PATTERN", "infer_columns", "infer_type"]
