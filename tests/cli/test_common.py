import json
import logging

import pytest

from sheetbase.cli.common import CliState, LogFormat, command_logger, effective_settings
from sheetbase.settings import Settings


def test_command_logger_filters_by_level(capsys: pytest.CaptureFixture[str]) -> None:
    settings = Settings(log_format="ndjson", log_level="warning")

    with command_logger(settings) as logger:
        logger.event("table.columns_ignored", level=logging.INFO, data={"headers": ["x"]})
        logger.event("table.columns_ignored", level=logging.WARNING, data={"headers": ["y"]})

    (line,) = capsys.readouterr().err.strip().splitlines()
    record = json.loads(line)
    assert record["event"] == "sheetbase.table.columns_ignored"
    assert record["operation_id"] == logger.operation_id
    assert record["data"] == {"headers": ["y"]}


def test_command_logger_detaches_handler_on_exit() -> None:
    with command_logger(Settings()) as logger:
        assert len(logger.logger.handlers) == 1
        assert not logger.logger.propagate

    assert logger.logger.handlers == []


def test_effective_settings_precedence(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'x.sqlite'}"

    quiet = effective_settings(CliState(quiet=True, debug=True, database_url=url, log_format=LogFormat.ndjson))
    assert (quiet.log_level, quiet.log_format, quiet.database_url) == (logging.WARNING, "ndjson", url)

    debug = effective_settings(CliState(debug=True, log_level="error"))
    assert debug.log_level == logging.DEBUG

    assert effective_settings(CliState(log_level="error")).log_level == logging.ERROR
