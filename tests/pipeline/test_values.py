from datetime import date, datetime

from sheetbase.pipeline.values import cell_text, is_blank, parse_date, parse_number


def test_cell_text_renders_spreadsheet_values() -> None:
    assert cell_text(None) == ""
    assert cell_text(10.0) == "10"
    assert cell_text(2.5) == "2.5"
    assert cell_text(True) == "TRUE"
    assert cell_text(datetime(2024, 1, 2)) == "2024-01-02"
    assert cell_text(datetime(2024, 1, 2, 9, 30)) == "2024-01-02T09:30:00"


def test_is_blank() -> None:
    assert is_blank(None)
    assert is_blank("  ")
    assert not is_blank(0)
    assert not is_blank("0")


def test_parse_number() -> None:
    assert parse_number("12.5") == 12.5
    assert parse_number(" -3 ") == -3.0
    assert parse_number(7) == 7.0
    assert parse_number(True) is None
    assert parse_number("inf") is None
    assert parse_number("abc") is None


def test_parse_date() -> None:
    assert parse_date("2024-01-31") == datetime(2024, 1, 31)
    assert parse_date("31.01.2024") == datetime(2024, 1, 31)
    assert parse_date("Jan 31, 2024") == datetime(2024, 1, 31)
    assert parse_date(date(2024, 1, 31)) == datetime(2024, 1, 31)
    assert parse_date("20240131") is None
    assert parse_date("soon") is None
    assert parse_date(45000) is None
