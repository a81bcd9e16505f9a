"""Dataset statistics for an uploaded spreadsheet."""

from __future__ import annotations

import polars as pl

from sheetbase.models import AnalyticsSummary, UploadedDataset
from sheetbase.pipeline.inference import infer_type
from sheetbase.pipeline.values import cell_text

SAMPLE_ROW_COUNT = 5
SIGNATURE_SEPARATOR = "|"


def _text_frame(dataset: UploadedDataset) -> pl.DataFrame:
    # Nulls stay null so they can be told apart from "" when counting.
    data = {
        header: [None if v is None else cell_text(v) for v in dataset.column_values(header)]
        for header in dataset.headers
    }
    return pl.DataFrame(data, schema={header: pl.Utf8 for header in dataset.headers})


def count_empty_cells(frame: pl.DataFrame) -> int:
    if frame.width == 0 or frame.height == 0:
        return 0
    counts = frame.select(
        [(pl.col(c).is_null() | (pl.col(c) == "")).sum().alias(c) for c in frame.columns]
    )
    return int(counts.sum_horizontal().item())


def count_duplicate_rows(frame: pl.DataFrame, total_rows: int) -> int:
    if total_rows == 0:
        return 0
    if frame.width == 0:
        return total_rows - 1
    signatures = frame.select(
        pl.concat_str([pl.col(c).fill_null("") for c in frame.columns], separator=SIGNATURE_SEPARATOR).alias(
            "signature"
        )
    )
    return total_rows - signatures["signature"].n_unique()


def summarize_dataset(dataset: UploadedDataset, *, sample_size: int = SAMPLE_ROW_COUNT) -> AnalyticsSummary:
    frame = _text_frame(dataset)
    total = dataset.row_count
    return AnalyticsSummary(
        total_rows=total,
        total_columns=len(dataset.headers),
        headers=list(dataset.headers),
        sample_rows=[dict(row) for row in dataset.rows[:sample_size]],
        column_types={h: infer_type(dataset.column_values(h)) for h in dataset.headers},
        empty_cells=count_empty_cells(frame),
        duplicate_rows=count_duplicate_rows(frame, total),
    )


__all__ = ["SAMPLE_ROW_COUNT", "count_duplicate_rows", "count_empty_cells", "summarize_dataset"]
