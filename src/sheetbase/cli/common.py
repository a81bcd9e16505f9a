"""Shared helpers/options for the sheetbase CLI."""

from __future__ import annotations

import dataclasses
import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer
from typer import BadParameter

from sheetbase.exceptions import SheetbaseError
from sheetbase.fields import load_field_set
from sheetbase.models import SemanticField
from sheetbase.observability.events import NAMESPACE
from sheetbase.observability.formatters import NdjsonFormatter, TextFormatter
from sheetbase.observability.logger import EventLogger
from sheetbase.service import IngestService
from sheetbase.settings import Settings, get_settings


class LogFormat(str, Enum):
    """Supported log output formats."""

    text = "text"
    ndjson = "ndjson"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def resolve_log_level(log_level: Optional[str], default_level: int) -> int:
    if not log_level:
        return default_level

    resolved = logging.getLevelNamesMapping().get(str(log_level).upper())
    if isinstance(resolved, int):
        return resolved

    raise BadParameter(f"Invalid log level: {log_level}", param_hint="log_level")


def resolve_logging(
    *,
    log_format: Optional[LogFormat],
    log_level: Optional[str],
    debug: bool,
    quiet: bool,
    settings: Settings,
) -> tuple[str, int]:
    """Compute effective log format/level.

    Precedence: --quiet > --debug > --log-level > settings.
    """
    effective_format = log_format.value if log_format else settings.log_format
    if quiet:
        return effective_format, logging.WARNING
    if debug:
        return effective_format, logging.DEBUG
    return effective_format, resolve_log_level(log_level, settings.log_level)


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class CliState:
    log_format: Optional[LogFormat] = None
    log_level: Optional[str] = None
    debug: bool = False
    quiet: bool = False
    database_url: Optional[str] = None


def effective_settings(state: CliState) -> Settings:
    settings = get_settings()
    updates: dict[str, Any] = {}
    if state.database_url:
        updates["database_url"] = state.database_url
    fmt, level = resolve_logging(
        log_format=state.log_format,
        log_level=state.log_level,
        debug=state.debug,
        quiet=state.quiet,
        settings=settings,
    )
    updates.update(log_format=fmt, log_level=level)
    return settings.model_copy(update=updates)


@contextmanager
def command_logger(settings: Settings) -> Iterator[EventLogger]:
    """Logger for one command, writing to stderr in the configured format.

    Each command gets its own non-propagating logger; its handler is removed on exit.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(settings.log_level)
    handler.setFormatter(NdjsonFormatter() if settings.log_format == "ndjson" else TextFormatter())

    operation_id = uuid.uuid4().hex
    base = logging.getLogger(f"{NAMESPACE}.cli.{operation_id}")
    base.setLevel(settings.log_level)
    base.propagate = False
    base.addHandler(handler)
    try:
        yield EventLogger(base, operation_id=operation_id)
    finally:
        base.removeHandler(handler)
        handler.close()


@contextmanager
def service_scope(ctx: typer.Context) -> Iterator[IngestService]:
    """Build a service for one command; taxonomy errors exit with code 1."""
    state: CliState = ctx.obj or CliState()
    settings = effective_settings(state)
    with command_logger(settings) as logger:
        try:
            yield IngestService.from_settings(settings, logger=logger)
        except SheetbaseError as exc:
            typer.echo(f"error: {exc}", err=True)
            raise typer.Exit(code=1) from exc


def read_fields(path: Path) -> list[SemanticField]:
    try:
        return load_field_set(path)
    except SheetbaseError as exc:
        raise BadParameter(str(exc), param_hint="fields") from exc


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def echo_json(value: Any) -> None:
    typer.echo(json.dumps(_jsonable(value), indent=2, ensure_ascii=False, default=str))


# ---------------------------------------------------------------------------
# Common reusable Typer options
# ---------------------------------------------------------------------------

FIELDS_OPTION = typer.Option(
    ...,
    "--fields",
    "-f",
    exists=True,
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
    help="Field-set file (.json or .toml).",
)

SHEET_OPTION = typer.Option(None, "--sheet", "-s", help="Worksheet to read (default: first visible sheet).")


__all__ = [
    "CliState",
    "FIELDS_OPTION",
    "LogFormat",
    "command_logger",
    "SHEET_OPTION",
    "echo_json",
    "effective_settings",
    "read_fields",
    "resolve_log_level",
    "resolve_logging",
    "service_scope",
]
