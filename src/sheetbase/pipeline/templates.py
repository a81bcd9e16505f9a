"""Blank-template generation with synthetic sample rows."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import date, timedelta
from typing import Any

from sheetbase.io.workbook import SpreadsheetWriter
from sheetbase.models import Row, SemanticField, sort_fields

SampleGenerator = Callable[[int, date], Any]

SAMPLE_GENERATORS: Mapping[str, SampleGenerator] = {
    "text": lambda i, _today: f"Sample Text {i + 1}",
    "email": lambda i, _today: f"sample{i + 1}@example.com",
    "number": lambda i, _today: (i + 1) * 100,
    "date": lambda i, today: (today + timedelta(days=i)).isoformat(),
    "phone": lambda i, _today: f"+1-555-{1000 + i}",
    "dropdown": lambda i, _today: f"Option {i % 3 + 1}",
}


def sample_value(value_type: str, index: int, today: date) -> Any:
    generator = SAMPLE_GENERATORS.get(value_type)
    if generator is None:
        return f"Sample {value_type} {index + 1}"
    return generator(index, today)


def sample_rows(
    fields: Sequence[SemanticField],
    count: int,
    *,
    today: date | None = None,
) -> tuple[list[str], list[Row]]:
    """Headers (display names in field order) and ``count`` rows keyed by header."""
    if count < 0:
        raise ValueError("sample row count must be >= 0")

    ordered = sort_fields(fields)
    today = today or date.today()
    headers = [f.display_name for f in ordered]
    rows = [
        {f.display_name: sample_value(f.value_type, i, today) for f in ordered}
        for i in range(count)
    ]
    return headers, rows


class TemplateGenerator:
    def __init__(
        self,
        *,
        writer: SpreadsheetWriter | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.writer = writer or SpreadsheetWriter()
        self.clock = clock

    def generate(self, fields: Sequence[SemanticField], sample_row_count: int) -> bytes:
        headers, rows = sample_rows(fields, sample_row_count, today=self.clock())
        return self.writer.write(headers, rows, sheet_title="Template")


__all__ = ["SAMPLE_GENERATORS", "TemplateGenerator", "sample_rows", "sample_value"]
