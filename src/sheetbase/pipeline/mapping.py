"""Match spreadsheet headers to declared semantic fields.

Each field is scored against the headers in tiers: exact name, substring,
then fuzzy (normalized Levenshtein). The first tier that produces a match wins
and, inside a tier, the left-most header wins. Fields that match nothing are
left out so a person can map them by hand.
"""

from __future__ import annotations

from collections.abc import Sequence

from rapidfuzz.distance import Levenshtein

from sheetbase.models import FieldMapping, SemanticField, UploadedDataset

EXACT_CONFIDENCE = 1.0
SUBSTRING_CONFIDENCE = 0.8
FUZZY_THRESHOLD = 0.5


def similarity(a: str, b: str) -> float:
    """``(maxLen - distance) / maxLen``; two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(a, b)) / longest


class FieldMappingResolver:
    """Suggest a source column for each semantic field."""

    def __init__(self, *, fuzzy_threshold: float = FUZZY_THRESHOLD) -> None:
        self.fuzzy_threshold = fuzzy_threshold

    def resolve(self, fields: Sequence[SemanticField], headers: Sequence[str]) -> list[FieldMapping]:
        mappings: list[FieldMapping] = []
        for field in fields:
            mapping = self.match_field(field, headers)
            if mapping is not None:
                mappings.append(mapping)
        return mappings

    def match_field(self, field: SemanticField, headers: Sequence[str]) -> FieldMapping | None:
        needles = [n for n in (field.display_name.lower(), field.field_key.lower()) if n]
        lowered = [h.lower() for h in headers]

        for header, low in zip(headers, lowered):
            if low in needles:
                return FieldMapping(header, field.field_key, EXACT_CONFIDENCE, "exact")

        for header, low in zip(headers, lowered):
            if not low:
                continue
            if any(n in low or low in n for n in needles):
                return FieldMapping(header, field.field_key, SUBSTRING_CONFIDENCE, "substring")

        display = field.display_name.lower()
        for header, low in zip(headers, lowered):
            score = similarity(display, low)
            if score > self.fuzzy_threshold:
                return FieldMapping(header, field.field_key, score, "fuzzy")

        return None


def apply_mappings(dataset: UploadedDataset, mappings: Sequence[FieldMapping]) -> UploadedDataset:
    """Return a dataset keyed by field key for every mapped column.

    Mapped columns come first in mapping order; unmapped headers follow unless
    a field key already claims their name.
    """
    known = set(dataset.headers)
    active = [m for m in mappings if m.source_column in known]

    headers: list[str] = []
    for m in active:
        if m.target_field_key not in headers:
            headers.append(m.target_field_key)
    mapped_sources = {m.source_column for m in active}
    headers.extend(h for h in dataset.headers if h not in mapped_sources and h not in headers)

    rows = []
    for row in dataset.rows:
        out: dict = {}
        for m in active:
            if m.source_column in row:
                out.setdefault(m.target_field_key, row[m.source_column])
        for h in dataset.headers:
            if h not in mapped_sources and h in row:
                out.setdefault(h, row[h])
        rows.append(out)

    return UploadedDataset(headers=headers, rows=rows, source=dataset.source)


__all__ = [
    "EXACT_CONFIDENCE",
    "FUZZY_THRESHOLD",
    "SUBSTRING_CONFIDENCE",
    "FieldMappingResolver",
    "apply_mappings",
    "similarity",
]
