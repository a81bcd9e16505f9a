import io
from pathlib import Path

import pytest
from openpyxl import Workbook

from sheetbase.exceptions import ParseError
from sheetbase.io.workbook import SpreadsheetReader, SpreadsheetWriter, detect_format


def _xlsx_bytes(rows: list[list], *, title: str = "Data") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_reads_csv_with_bom() -> None:
    payload = "\ufeffName,Amount\nA,10\nB,20\n".encode("utf-8")

    dataset = SpreadsheetReader().read(payload, filename="people.csv")

    assert dataset.headers == ["Name", "Amount"]
    assert dataset.rows == [{"Name": "A", "Amount": "10"}, {"Name": "B", "Amount": "20"}]
    assert dataset.source == "people.csv"


def test_reads_xlsx_typed_values_and_skips_blank_rows() -> None:
    payload = _xlsx_bytes([["Name", "Amount", None, "Note"], ["A", 10, None, None], [None, None, None, None], ["B"]])

    dataset = SpreadsheetReader().read(payload, filename="people.xlsx")

    assert dataset.headers == ["Name", "Amount", "Note"]
    assert dataset.rows == [
        {"Name": "A", "Amount": 10, "Note": None},
        {"Name": "B", "Amount": None, "Note": None},
    ]


def test_duplicate_headers_are_suffixed() -> None:
    dataset = SpreadsheetReader().read(b"id,id,name\n1,2,x\n", filename="dupes.csv")

    assert dataset.headers == ["id", "id_2", "name"]
    assert dataset.rows == [{"id": "1", "id_2": "2", "name": "x"}]


def test_named_sheet_and_missing_sheet() -> None:
    wb = Workbook()
    wb.active.append(["ignored"])
    other = wb.create_sheet("Second")
    other.append(["Code"])
    other.append(["X1"])
    buffer = io.BytesIO()
    wb.save(buffer)

    reader = SpreadsheetReader()
    assert reader.read(buffer.getvalue(), filename="book.xlsx", sheet="Second").rows == [{"Code": "X1"}]
    with pytest.raises(ParseError):
        reader.read(buffer.getvalue(), filename="book.xlsx", sheet="Nope")


@pytest.mark.parametrize(
    ("payload", "filename"),
    [
        (b"", "empty.csv"),
        (b"PK\x03\x04not really a zip", "broken.xlsx"),
        (b"\xff\xfe\x00bad", "latin.csv"),
        (b"\n\n", "blank.csv"),
        (b"a,b\n", "notes.txt"),
    ],
)
def test_unreadable_input_raises_parse_error(payload: bytes, filename: str) -> None:
    with pytest.raises(ParseError):
        SpreadsheetReader().read(payload, filename=filename)


def test_detect_format_sniffs_without_filename() -> None:
    assert detect_format(_xlsx_bytes([["a"]])) == "xlsx"
    assert detect_format(b"a,b\n1,2\n") == "csv"


def test_read_path(tmp_path: Path) -> None:
    path = tmp_path / "input.csv"
    path.write_text("a\n1\n", encoding="utf-8")

    assert SpreadsheetReader().read_path(path).rows == [{"a": "1"}]
    with pytest.raises(ParseError):
        SpreadsheetReader().read_path(tmp_path / "missing.csv")


def test_writer_round_trips_headers_and_values() -> None:
    payload = SpreadsheetWriter().write(["Name", "Amount"], [{"Name": "A", "Amount": 100}, {"Name": "B"}])

    dataset = SpreadsheetReader().read(payload)

    assert dataset.headers == ["Name", "Amount"]
    assert dataset.rows == [{"Name": "A", "Amount": 100}, {"Name": "B", "Amount": None}]
