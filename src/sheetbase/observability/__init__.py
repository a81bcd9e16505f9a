"""Structured logging for sheetbase."""

from sheetbase.observability.formatters import NdjsonFormatter, TextFormatter
from sheetbase.observability.logger import EventLogger, NullLogger, default_logger

__all__ = [
    "EventLogger",
    "NdjsonFormatter",
    "NullLogger",
    "TextFormatter",
    "default_logger",
]
