"""Public API for :mod:`sheetbase`."""

from importlib import metadata
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sheetbase.models import (
        AnalyticsSummary,
        FieldMapping,
        LoadResult,
        SemanticField,
        UploadedDataset,
        ValidationResult,
    )
    from sheetbase.service import IngestService
    from sheetbase.settings import Settings


def _resolve_version() -> str:
    try:
        return metadata.version("sheetbase")
    except metadata.PackageNotFoundError:  # pragma: no cover
        return "unknown"


__version__ = _resolve_version()

_EXPORTS = {
    "AnalyticsSummary": ("sheetbase.models", "AnalyticsSummary"),
    "FieldMapping": ("sheetbase.models", "FieldMapping"),
    "IngestService": ("sheetbase.service", "IngestService"),
    "LoadResult": ("sheetbase.models", "LoadResult"),
    "SemanticField": ("sheetbase.models", "SemanticField"),
    "Settings": ("sheetbase.settings", "Settings"),
    "UploadedDataset": ("sheetbase.models", "UploadedDataset"),
    "ValidationResult": ("sheetbase.models", "ValidationResult"),
}


def __getattr__(name: str):
    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = target
    module = __import__(module_name, fromlist=[attr_name])
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(_EXPORTS.keys()))


__all__ = [
    "AnalyticsSummary",
    "FieldMapping",
    "IngestService",
    "LoadResult",
    "SemanticField",
    "Settings",
    "UploadedDataset",
    "ValidationResult",
    "__version__",
]
