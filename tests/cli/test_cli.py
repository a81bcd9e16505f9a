import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from sheetbase import __version__
from sheetbase.cli.app import app
from sheetbase.io.workbook import SpreadsheetReader

runner = CliRunner()

FIELDS_TOML = """
[[fields]]
field_key = "name"
display_name = "Name"
required = true
order = 1

[[fields]]
field_key = "email"
display_name = "Employee Email"
value_type = "email"
required = true
order = 2

[[fields]]
field_key = "amount"
display_name = "Amount"
value_type = "number"
order = 3
"""


@pytest.fixture()
def db_args(tmp_path: Path) -> list[str]:
    return ["--quiet", "--database-url", f"sqlite:///{tmp_path / 'cli.sqlite'}"]


@pytest.fixture()
def people_csv(tmp_path: Path) -> Path:
    path = tmp_path / "people.csv"
    path.write_text("Name,Email,Amount\nA,a@x.com,10\nB,bad,20\n", encoding="utf-8")
    return path


@pytest.fixture()
def fields_file(tmp_path: Path) -> Path:
    path = tmp_path / "fields.toml"
    path.write_text(FIELDS_TOML, encoding="utf-8")
    return path


def _json(result) -> object:
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_inspect_and_infer(db_args: list[str], people_csv: Path) -> None:
    summary = _json(runner.invoke(app, [*db_args, "inspect", str(people_csv)]))
    assert summary["total_rows"] == 2
    assert summary["column_types"] == {"Name": "text", "Email": "text", "Amount": "number"}

    types = _json(runner.invoke(app, [*db_args, "infer", str(people_csv)]))
    assert types == {"Name": "text", "Email": "text", "Amount": "number"}


def test_suggest(db_args: list[str], people_csv: Path, fields_file: Path) -> None:
    mappings = _json(runner.invoke(app, [*db_args, "suggest", str(people_csv), "--fields", str(fields_file)]))

    assert [(m["source_column"], m["target_field_key"]) for m in mappings] == [
        ("Name", "name"),
        ("Email", "email"),
        ("Amount", "amount"),
    ]


def test_validate_exit_codes(db_args: list[str], people_csv: Path, fields_file: Path) -> None:
    failing = runner.invoke(app, [*db_args, "validate", str(people_csv), "--fields", str(fields_file)])
    assert failing.exit_code == 1

    passing = runner.invoke(
        app,
        [*db_args, "validate", str(people_csv), "--fields", str(fields_file), "--apply-suggestions"],
    )
    result = _json(passing)
    assert result["is_valid"] is True
    assert result["valid_rows"] == 2


def test_validate_rejects_unknown_mode(db_args: list[str], people_csv: Path, fields_file: Path) -> None:
    result = runner.invoke(
        app, [*db_args, "validate", str(people_csv), "--fields", str(fields_file), "--mode", "everything"]
    )

    assert result.exit_code == 2


def test_bad_field_file_is_a_usage_error(db_args: list[str], people_csv: Path, tmp_path: Path) -> None:
    broken = tmp_path / "fields.json"
    broken.write_text('{"fields": [{"display_name": "no key"}]}', encoding="utf-8")

    result = runner.invoke(app, [*db_args, "suggest", str(people_csv), "--fields", str(broken)])

    assert result.exit_code == 2


def test_template(db_args: list[str], fields_file: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "template.xlsx"

    result = runner.invoke(app, [*db_args, "template", "--fields", str(fields_file), "-o", str(output), "--rows", "2"])

    assert result.exit_code == 0, result.output
    dataset = SpreadsheetReader().read_path(output)
    assert dataset.headers == ["Name", "Employee Email", "Amount"]
    assert dataset.row_count == 2


def test_load_rows_tables_and_drop(db_args: list[str], people_csv: Path) -> None:
    loaded = _json(runner.invoke(app, [*db_args, "load", str(people_csv), "--target", "hr-people"]))
    assert loaded["rows_loaded"] == 2
    assert loaded["created"] is True

    tables = _json(runner.invoke(app, [*db_args, "tables"]))
    assert [(t["target_id"], t["total_rows"]) for t in tables] == [("hr-people", 2)]

    rows = _json(runner.invoke(app, [*db_args, "rows", "hr-people", "--limit", "1"]))
    assert rows == [{"name": "A", "email": "a@x.com", "amount": 10.0}]

    dropped = runner.invoke(app, [*db_args, "drop", "hr-people", "--yes"])
    assert dropped.exit_code == 0
    assert dropped.stdout.strip() == loaded["table_name"]

    missing = runner.invoke(app, [*db_args, "rows", "hr-people"])
    assert missing.exit_code == 1
    assert "error:" in missing.output
