"""Spreadsheet decoding and encoding (CSV/XLSX) for sheetbase."""

from __future__ import annotations

import csv
import io
import zipfile
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any, BinaryIO

import openpyxl
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from sheetbase.exceptions import ParseError
from sheetbase.models import Row, UploadedDataset
from sheetbase.pipeline.values import cell_text, is_blank

XLSX_SUFFIXES = frozenset({".xlsx", ".xlsm"})
CSV_SUFFIXES = frozenset({".csv"})
ZIP_MAGIC = b"PK\x03\x04"

MIN_COLUMN_WIDTH = 12
MAX_COLUMN_WIDTH = 50


def _read_bytes(source: BinaryIO | bytes) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    return source.read()


def detect_format(payload: bytes, filename: str | None = None) -> str:
    """Return ``"xlsx"`` or ``"csv"`` from the file suffix, else from the leading bytes."""
    if filename:
        suffix = Path(filename).suffix.lower()
        if suffix in XLSX_SUFFIXES:
            return "xlsx"
        if suffix in CSV_SUFFIXES:
            return "csv"
        if suffix:
            raise ParseError(f"Unsupported spreadsheet type '{suffix}' for {filename}")
    return "xlsx" if payload.startswith(ZIP_MAGIC) else "csv"


def _build_headers(raw: Sequence[Any]) -> list[tuple[int, str]]:
    """(column index, header) pairs; blank header cells are skipped, repeats get ``_2``, ``_3``."""
    headers: list[tuple[int, str]] = []
    seen: set[str] = set()
    for idx, value in enumerate(raw):
        name = cell_text(value).strip()
        if not name:
            continue
        candidate = name
        n = 2
        while candidate in seen:
            candidate = f"{name}_{n}"
            n += 1
        seen.add(candidate)
        headers.append((idx, candidate))
    return headers


def rows_to_dataset(rows: Iterable[Sequence[Any]], *, source: str | None = None) -> UploadedDataset:
    iterator = iter(rows)
    header_row: Sequence[Any] | None = None
    for raw in iterator:
        if any(not is_blank(v) for v in raw):
            header_row = raw
            break
    if header_row is None:
        raise ParseError(f"No header row found in {source or 'spreadsheet'}")

    columns = _build_headers(header_row)
    data: list[Row] = []
    for raw in iterator:
        if all(is_blank(v) for v in raw):
            continue
        data.append({name: (raw[idx] if idx < len(raw) else None) for idx, name in columns})

    return UploadedDataset(headers=[name for _, name in columns], rows=data, source=source)


@contextmanager
def open_workbook(payload: bytes) -> Iterator[Workbook]:
    """Open an XLSX payload read-only, mapping decoder failures to :class:`ParseError`."""
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(payload), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        raise ParseError(f"Unreadable workbook: {exc}") from exc
    try:
        yield workbook
    finally:
        with suppress(Exception):
            workbook.close()


class SpreadsheetReader:
    """Decode CSV or XLSX bytes into an :class:`UploadedDataset`."""

    def __init__(self, *, csv_encoding: str = "utf-8-sig") -> None:
        self.csv_encoding = csv_encoding

    def read(
        self,
        source: BinaryIO | bytes,
        *,
        filename: str | None = None,
        sheet: str | None = None,
    ) -> UploadedDataset:
        payload = _read_bytes(source)
        if not payload:
            raise ParseError(f"{filename or 'Spreadsheet'} is empty")

        if detect_format(payload, filename) == "xlsx":
            return self._read_xlsx(payload, filename=filename, sheet=sheet)
        return self._read_csv(payload, filename=filename)

    def read_path(self, path: Path, *, sheet: str | None = None) -> UploadedDataset:
        try:
            payload = path.read_bytes()
        except OSError as exc:
            raise ParseError(f"Cannot read {path}: {exc}") from exc
        return self.read(payload, filename=path.name, sheet=sheet)

    def _read_xlsx(self, payload: bytes, *, filename: str | None, sheet: str | None) -> UploadedDataset:
        with open_workbook(payload) as workbook:
            if sheet is not None:
                if sheet not in workbook.sheetnames:
                    raise ParseError(f"Worksheet '{sheet}' not found in {filename or 'workbook'}")
                ws = workbook[sheet]
            else:
                visible = [w for w in workbook.worksheets if getattr(w, "sheet_state", "visible") == "visible"]
                if not visible:
                    raise ParseError(f"{filename or 'Workbook'} has no visible worksheets")
                ws = visible[0]
            return rows_to_dataset(ws.iter_rows(values_only=True), source=filename)

    def _read_csv(self, payload: bytes, *, filename: str | None) -> UploadedDataset:
        try:
            text = payload.decode(self.csv_encoding)
            rows = list(csv.reader(io.StringIO(text, newline="")))
        except (UnicodeDecodeError, csv.Error) as exc:
            raise ParseError(f"Unreadable CSV {filename or ''}: {exc}".strip()) from exc
        return rows_to_dataset(rows, source=filename)


class SpreadsheetWriter:
    """Encode headers and rows as an XLSX workbook with a bold header row."""

    def write(self, headers: Sequence[str], rows: Sequence[Row], *, sheet_title: str = "Sheet1") -> bytes:
        workbook = Workbook()
        ws = workbook.active
        ws.title = sheet_title[:31] or "Sheet1"

        ws.append(list(headers))
        for row in rows:
            ws.append([row.get(h) for h in headers])

        header_font = Font(bold=True)
        header_alignment = Alignment(vertical="top")
        for cell in ws[1]:
            cell.font = header_font
            cell.alignment = header_alignment

        for idx, header in enumerate(headers, start=1):
            longest = max([len(str(header))] + [len(cell_text(row.get(header))) for row in rows])
            width = min(max(longest + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH)
            ws.column_dimensions[get_column_letter(idx)].width = width

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()


__all__ = [
    "SpreadsheetReader",
    "SpreadsheetWriter",
    "detect_format",
    "open_workbook",
    "rows_to_dataset",
]
