"""Log record rendering: one JSON object per line, or one readable line per record."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sheetbase.observability.events import DEFAULT_EVENT, NAMESPACE

MAX_TEXT_FIELDS = 10
MAX_TEXT_VALUE = 80


def _timestamp(created: float) -> str:
    stamp = datetime.fromtimestamp(created, tz=timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def _short(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        text = ",".join(str(v) for v in value)
    else:
        text = str(value)
    return text if len(text) <= MAX_TEXT_VALUE else text[: MAX_TEXT_VALUE - 3] + "..."


def event_record(record: logging.LogRecord, formatter: logging.Formatter) -> dict[str, Any]:
    """Flatten a record into the fields both formatters share.

    ``event``, ``operation_id`` and ``data`` are set by :class:`EventLogger`;
    records from plain loggers get the default event and no operation id.
    """
    out: dict[str, Any] = {
        "timestamp": _timestamp(record.created),
        "level": record.levelname.lower(),
        "event": str(getattr(record, "event", None) or f"{NAMESPACE}.{DEFAULT_EVENT}"),
        "operation_id": str(getattr(record, "operation_id", None) or ""),
        "event_id": str(getattr(record, "event_id", None) or ""),
        "message": record.getMessage(),
    }

    data = getattr(record, "data", None)
    if isinstance(data, Mapping) and data:
        out["data"] = dict(data)

    if record.exc_info and record.exc_info[0] is not None:
        exc_type, exc, _tb = record.exc_info
        out["error"] = {
            "type": exc_type.__name__,
            "message": str(exc),
            "stack_trace": formatter.formatException(record.exc_info),
        }
    return out


class NdjsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload = event_record(record, self)
        try:
            return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError):
            # Data values that json cannot encode are rendered as text.
            return json.dumps(payload, ensure_ascii=False, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """``<time> <LEVEL> <event>: <message> | key=value ...`` plus any traceback."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload = event_record(record, self)
        line = f"{payload['timestamp']} {payload['level'].upper()} {payload['event']}"
        if payload["message"] and payload["message"] != payload["event"]:
            line += f": {payload['message']}"

        data = payload.get("data") or {}
        if data:
            pairs = [f"{key}={_short(value)}" for key, value in list(data.items())[:MAX_TEXT_FIELDS]]
            if len(data) > MAX_TEXT_FIELDS:
                pairs.append(f"+{len(data) - MAX_TEXT_FIELDS} more")
            line += " | " + " ".join(pairs)

        error = payload.get("error")
        if error:
            line += "\n" + error["stack_trace"].rstrip("\n")
        return line


__all__ = ["NdjsonFormatter", "TextFormatter", "event_record"]
