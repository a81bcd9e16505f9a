import io
import json
import logging

import pytest

from sheetbase.observability.formatters import NdjsonFormatter, TextFormatter
from sheetbase.observability.logger import EventLogger, NullLogger, qualify_event_name


def _capture(formatter: logging.Formatter) -> tuple[EventLogger, io.StringIO]:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    base = logging.Logger("sheetbase.test")
    base.addHandler(handler)
    base.setLevel(logging.DEBUG)
    return EventLogger(base, operation_id="op-1"), stream


def test_qualify_event_name() -> None:
    assert qualify_event_name("table.loaded", "sheetbase") == "sheetbase.table.loaded"
    assert qualify_event_name("sheetbase.table.loaded", "sheetbase") == "sheetbase.table.loaded"
    assert qualify_event_name("", "sheetbase") == "sheetbase.invalid_event"


def test_ndjson_event_record() -> None:
    logger, stream = _capture(NdjsonFormatter())

    logger.event(
        "table.dropped",
        message="Dropped table dt_x",
        data={"target_id": "x", "table_name": "dt_x"},
    )

    record = json.loads(stream.getvalue())
    assert record["event"] == "sheetbase.table.dropped"
    assert record["operation_id"] == "op-1"
    assert record["level"] == "info"
    assert record["message"] == "Dropped table dt_x"
    assert record["data"] == {"target_id": "x", "table_name": "dt_x"}
    assert record["timestamp"].endswith("Z")


def test_plain_log_lines_get_default_event() -> None:
    logger, stream = _capture(NdjsonFormatter())

    logger.warning("plain message")

    assert json.loads(stream.getvalue())["event"] == "sheetbase.log"


def test_text_formatter_includes_data_and_errors() -> None:
    logger, stream = _capture(TextFormatter())

    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        logger.event("pipeline.failed", level=logging.ERROR, message="load failed", data={"stage": "load"}, exc=exc)

    text = stream.getvalue()
    assert "ERROR sheetbase.pipeline.failed: load failed | stage=load" in text
    assert "RuntimeError: boom" in text


def test_registered_payloads_are_strict() -> None:
    logger, _stream = _capture(NdjsonFormatter())

    with pytest.raises(ValueError, match="table.dropped"):
        logger.event("table.dropped", data={"target_id": "x"})
    with pytest.raises(ValueError):
        logger.event("table.dropped", data={"target_id": "x", "table_name": "dt_x", "extra": 1})


def test_null_logger_discards_everything() -> None:
    logger = NullLogger()

    logger.event("table.dropped", data={"not": "validated"})
    assert not logger.isEnabledFor(logging.CRITICAL)

