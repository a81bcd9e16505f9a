"""CLI entrypoint for :mod:`sheetbase`.

Commands:

- `inspect`  - row/column counts, column types, empty cells, duplicates.
- `infer`    - inferred type per column.
- `suggest`  - header-to-field mapping suggestions for a field set.
- `validate` - structural and/or row-level validation against a field set.
- `template` - write an .xlsx template with sample rows for a field set.
- `load`     - provision the target's table (once) and insert the file's rows.
- `tables`, `rows`, `drop` - inspect and remove provisioned tables.
- `version`  - print the package version.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from typer import BadParameter

from sheetbase import __version__
from sheetbase.cli.common import (
    FIELDS_OPTION,
    SHEET_OPTION,
    CliState,
    LogFormat,
    echo_json,
    read_fields,
    service_scope,
)
from sheetbase.pipeline.validate import VALIDATION_MODES

INPUT_ARGUMENT = typer.Argument(
    ...,
    exists=True,
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
    help="Spreadsheet to read (.xlsx, .xlsm or .csv).",
)

app = typer.Typer(
    help=(
        "sheetbase: turn spreadsheets into SQL tables.\n\n"
        "## Quick Start\n\n"
        "```bash\n"
        "sheetbase inspect people.xlsx\n"
        "sheetbase suggest people.xlsx --fields fields.toml\n"
        "sheetbase validate people.xlsx --fields fields.toml --mode full\n"
        "sheetbase load people.xlsx --target hr-people\n"
        "sheetbase rows hr-people --limit 20\n"
        "```\n"
    ),
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@app.callback()
def configure(
    ctx: typer.Context,
    database_url: Optional[str] = typer.Option(
        None, "--database-url", help="SQLAlchemy URL (or set SHEETBASE_DATABASE_URL / settings.toml)."
    ),
    log_format: Optional[LogFormat] = typer.Option(None, "--log-format", case_sensitive=False, help="Log output format."),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", case_sensitive=False, help="Log level (debug, info, warning, error, critical)."
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
    quiet: bool = typer.Option(False, "--quiet", help="Reduce output to warnings and errors."),
) -> None:
    ctx.obj = CliState(
        log_format=log_format,
        log_level=log_level,
        debug=debug,
        quiet=quiet,
        database_url=database_url,
    )


@app.command("inspect")
def inspect_command(ctx: typer.Context, input_file: Path = INPUT_ARGUMENT, sheet: Optional[str] = SHEET_OPTION) -> None:
    """Summarize a spreadsheet."""
    with service_scope(ctx) as service:
        dataset = service.read_file(input_file, sheet=sheet)
        echo_json(service.summarize(dataset))


@app.command("infer")
def infer_command(ctx: typer.Context, input_file: Path = INPUT_ARGUMENT, sheet: Optional[str] = SHEET_OPTION) -> None:
    """Print the inferred type of every column."""
    with service_scope(ctx) as service:
        dataset = service.read_file(input_file, sheet=sheet)
        echo_json({col.name: col.inferred_type for col in service.infer(dataset)})


@app.command("suggest")
def suggest_command(
    ctx: typer.Context,
    input_file: Path = INPUT_ARGUMENT,
    fields: Path = FIELDS_OPTION,
    sheet: Optional[str] = SHEET_OPTION,
) -> None:
    """Suggest which column feeds each field."""
    field_set = read_fields(fields)
    with service_scope(ctx) as service:
        dataset = service.read_file(input_file, sheet=sheet)
        echo_json(service.suggest_mappings(field_set, dataset))


@app.command("validate")
def validate_command(
    ctx: typer.Context,
    input_file: Path = INPUT_ARGUMENT,
    fields: Path = FIELDS_OPTION,
    mode: str = typer.Option("full", "--mode", "-m", help="structure, rows or full."),
    apply_suggestions: bool = typer.Option(
        False, "--apply-suggestions", help="Rename suggested columns to their field keys before validating."
    ),
    sheet: Optional[str] = SHEET_OPTION,
) -> None:
    """Validate a spreadsheet against a field set. Exits 1 when invalid."""
    if mode not in VALIDATION_MODES:
        raise BadParameter(f"mode must be one of: {', '.join(VALIDATION_MODES)}", param_hint="mode")
    field_set = read_fields(fields)
    with service_scope(ctx) as service:
        dataset = service.read_file(input_file, sheet=sheet)
        mappings = service.suggest_mappings(field_set, dataset) if apply_suggestions else None
        result = service.validate(field_set, dataset, mode, mappings=mappings)
        echo_json({**vars(result), "is_valid": result.is_valid})
    if not result.is_valid:
        raise typer.Exit(code=1)


@app.command("template")
def template_command(
    ctx: typer.Context,
    fields: Path = FIELDS_OPTION,
    output: Path = typer.Option(..., "--output", "-o", resolve_path=True, help="Destination .xlsx file."),
    rows: Optional[int] = typer.Option(None, "--rows", "-n", min=0, help="Sample rows (default from settings)."),
) -> None:
    """Write a template workbook with sample rows."""
    if output.suffix.lower() != ".xlsx":
        raise BadParameter("--output must end with .xlsx", param_hint="output")
    field_set = read_fields(fields)
    with service_scope(ctx) as service:
        payload = service.generate_template(field_set, rows)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(payload)
    typer.echo(str(output))


@app.command("load")
def load_command(
    ctx: typer.Context,
    input_file: Path = INPUT_ARGUMENT,
    target: str = typer.Option(..., "--target", "-t", help="Target id that owns the table."),
    sheet: Optional[str] = SHEET_OPTION,
) -> None:
    """Provision the target's table if needed and load the spreadsheet into it."""
    with service_scope(ctx) as service:
        dataset = service.read_file(input_file, sheet=sheet)
        echo_json(service.provision_and_load(target, dataset))


@app.command("tables")
def tables_command(ctx: typer.Context) -> None:
    """List provisioned tables."""
    with service_scope(ctx) as service:
        echo_json(
            [
                {
                    "target_id": t.descriptor.target_id,
                    "table_name": t.table_name,
                    "columns": len(t.descriptor.columns),
                    "total_rows": t.total_rows,
                    "updated_at": t.updated_at,
                }
                for t in service.list_tables()
            ]
        )


@app.command("rows")
def rows_command(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Target id."),
    offset: int = typer.Option(0, "--offset", min=0),
    limit: int = typer.Option(100, "--limit", min=1, max=10_000),
) -> None:
    """Print a page of rows from a target's table."""
    with service_scope(ctx) as service:
        echo_json(service.read_rows(target, offset=offset, limit=limit))


@app.command("drop")
def drop_command(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Target id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Drop a target's table."""
    if not yes:
        typer.confirm(f"Drop the table for target '{target}'?", abort=True)
    with service_scope(ctx) as service:
        typer.echo(service.drop_table(target))


@app.command("version")
def version_command() -> None:
    """Print the package version."""
    typer.echo(__version__)


def main() -> None:
    """Entrypoint used by console scripts and `python -m sheetbase`."""
    app()


__all__ = ["app", "main"]
