"""Event-aware logger used by every sheetbase component.

Each record carries an ``event`` name under the ``sheetbase`` namespace, the
``operation_id`` of the logger that produced it, and a fresh ``event_id``.
Events listed in :data:`EVENT_SCHEMAS` have their payload checked before the
record is emitted; an invalid payload is a programming error and raises.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any, TypeAlias

from pydantic import ValidationError

from sheetbase.observability.events import DEFAULT_EVENT, EVENT_SCHEMAS, NAMESPACE

EventData: TypeAlias = Mapping[str, Any]


def qualify_event_name(event_name: str, namespace: str = NAMESPACE) -> str:
    """Prefix ``event_name`` with ``namespace`` unless it already carries it."""
    name = (event_name or "").strip(". ")
    ns = (namespace or "").strip(". ")
    if not name:
        name = "invalid_event"
    if not ns or name == ns or name.startswith(f"{ns}."):
        return name
    return f"{ns}.{name}"


def checked_payload(event: str, payload: dict[str, Any]) -> dict[str, Any]:
    schema = EVENT_SCHEMAS.get(event)
    if schema is None:
        return payload
    try:
        return schema.model_validate(payload, strict=True).model_dump(mode="python")
    except ValidationError as exc:
        raise ValueError(f"Invalid payload for event '{event}': {exc}") from exc


class EventLogger(logging.LoggerAdapter):
    """``LoggerAdapter`` with an operation id and an :meth:`event` helper."""

    def __init__(self, logger: logging.Logger, *, namespace: str = NAMESPACE, operation_id: str | None = None) -> None:
        self.namespace = (namespace or "").strip(".")
        self.operation_id = operation_id or uuid.uuid4().hex
        super().__init__(logger, {"operation_id": self.operation_id})

    def process(self, msg: Any, kwargs: dict[str, Any]) -> tuple[Any, dict[str, Any]]:
        extra = dict(kwargs.pop("extra", None) or {})
        extra["operation_id"] = self.operation_id
        extra.setdefault("event_id", uuid.uuid4().hex)
        extra.setdefault("event", qualify_event_name(DEFAULT_EVENT, self.namespace))
        if "data" in extra and not isinstance(extra["data"], Mapping):
            extra["data"] = {"value": extra["data"]}
        kwargs["extra"] = extra
        return msg, kwargs

    def event(
        self,
        name: str,
        *,
        message: str | None = None,
        level: int = logging.INFO,
        data: EventData | None = None,
        exc: BaseException | None = None,
    ) -> None:
        """Emit domain event ``name`` (qualified under the namespace) with ``data``."""
        if not self.isEnabledFor(level):
            return

        event = qualify_event_name(name, self.namespace)
        payload = checked_payload(event, dict(data or {}))
        extra: dict[str, Any] = {"event": event}
        if payload:
            extra["data"] = payload

        exc_info = (type(exc), exc, exc.__traceback__) if exc is not None else None
        self.log(level, message or event, extra=extra, exc_info=exc_info)


class NullLogger(EventLogger):
    """Discards everything; payloads are not even checked."""

    def __init__(self) -> None:
        sink = logging.Logger(f"{NAMESPACE}.null")
        sink.addHandler(logging.NullHandler())
        sink.propagate = False
        sink.disabled = True
        super().__init__(sink, operation_id="null")


def default_logger() -> EventLogger:
    """Adapter over the ``sheetbase`` logger for callers that wire no handlers of their own."""
    return EventLogger(logging.getLogger(NAMESPACE))


__all__ = ["EventLogger", "NullLogger", "checked_payload", "default_logger", "qualify_event_name"]
