"""Exception hierarchy for :mod:`sheetbase`.

Every error raised on purpose by the pipeline derives from :class:`SheetbaseError`
so callers (the CLI, embedding applications) can catch one type. Validation
problems are *not* exceptions; they are returned inside ``ValidationResult``.
"""

from __future__ import annotations


class SheetbaseError(Exception):
    """Base class for sheetbase errors."""


class ConfigError(SheetbaseError):
    """Invalid settings or field-set definition."""


class ParseError(SheetbaseError):
    """A spreadsheet could not be decoded into headers and rows."""


class UploadRejectedError(ParseError):
    """An upload was refused before decoding (extension or size limits)."""


class NotFoundError(SheetbaseError):
    """Unknown dataset reference or provisioning target."""


class SchemaConflictError(SheetbaseError):
    """An existing table cannot hold the columns now required for its target."""

    def __init__(self, message: str, *, target_id: str, conflicts: list[str] | None = None) -> None:
        super().__init__(message)
        self.target_id = target_id
        self.conflicts = list(conflicts or [])


class StorageError(SheetbaseError):
    """DDL or DML failed against the relational store."""


class OperationCancelledError(SheetbaseError):
    """The caller cancelled the operation before it completed."""


class PipelineError(SheetbaseError):
    """Unexpected failure, wrapped with the name of the stage that raised it."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


__all__ = [
    "ConfigError",
    "NotFoundError",
    "OperationCancelledError",
    "ParseError",
    "PipelineError",
    "SchemaConflictError",
    "SheetbaseError",
    "StorageError",
    "UploadRejectedError",
]
