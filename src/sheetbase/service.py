"""Application facade tying the pipeline stages to their collaborators.

``IngestService`` is what the CLI (and any embedding application) talks to.
Errors from the sheetbase taxonomy pass through unchanged; anything else is
logged with context and re-raised as :class:`PipelineError`.
"""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable, Sequence
from datetime import date
from pathlib import Path
from typing import Any, BinaryIO, ParamSpec, TypeVar

from sheetbase.db.engine import build_engine, init_schema
from sheetbase.db.executor import RelationalExecutor
from sheetbase.db.provisioner import TableProvisioner
from sheetbase.db.registry import RegisteredTable
from sheetbase.exceptions import PipelineError, SheetbaseError
from sheetbase.io.blob import BlobStore, FilesystemBlobStore, StoredBlob
from sheetbase.io.workbook import SpreadsheetReader, SpreadsheetWriter
from sheetbase.models import (
    AnalyticsSummary,
    FieldMapping,
    InferredColumn,
    LoadResult,
    SemanticField,
    UploadedDataset,
    ValidationMode,
    ValidationResult,
)
from sheetbase.observability.logger import EventLogger, default_logger
from sheetbase.pipeline.analytics import summarize_dataset
from sheetbase.pipeline.inference import infer_columns
from sheetbase.pipeline.mapping import FieldMappingResolver, apply_mappings
from sheetbase.pipeline.templates import TemplateGenerator
from sheetbase.pipeline.validate import validate_dataset
from sheetbase.settings import Settings, get_settings

P = ParamSpec("P")
R = TypeVar("R")


def _stage(name: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Wrap unexpected exceptions from a facade method in :class:`PipelineError`."""

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return fn(*args, **kwargs)
            except SheetbaseError:
                raise
            except Exception as exc:
                logger: EventLogger | None = getattr(args[0], "logger", None)
                if logger is None:
                    logger = default_logger()
                logger.event(
                    "pipeline.failed",
                    level=logging.ERROR,
                    message=f"{name} failed: {exc}",
                    data={"stage": name, "error_type": type(exc).__name__},
                    exc=exc,
                )
                raise PipelineError(f"{name} failed: {exc}", stage=name) from exc

        return wrapper

    return decorator


class IngestService:
    def __init__(
        self,
        *,
        provisioner: TableProvisioner,
        blob_store: BlobStore | None = None,
        reader: SpreadsheetReader | None = None,
        writer: SpreadsheetWriter | None = None,
        resolver: FieldMappingResolver | None = None,
        settings: Settings | None = None,
        logger: EventLogger | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.settings = settings or get_settings()
        self.logger = default_logger() if logger is None else logger
        self.provisioner = provisioner
        self.blob_store = blob_store
        self.reader = reader or SpreadsheetReader()
        self.resolver = resolver or FieldMappingResolver()
        self.templates = TemplateGenerator(writer=writer or SpreadsheetWriter(), clock=clock)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, *, logger: EventLogger | None = None) -> "IngestService":
        """Build the service and its collaborators from settings, creating the registry if needed."""
        settings = settings or get_settings()
        logger = default_logger() if logger is None else logger
        engine = build_engine(settings)
        init_schema(engine)
        provisioner = TableProvisioner(
            RelationalExecutor(engine),
            table_prefix=settings.table_prefix,
            max_identifier_length=settings.max_identifier_length,
            batch_size=settings.insert_batch_size,
            logger=logger,
        )
        blob_store = FilesystemBlobStore(
            settings.blob_dir,
            max_bytes=settings.max_upload_bytes,
            allowed_extensions=settings.supported_file_extensions,
        )
        return cls(provisioner=provisioner, blob_store=blob_store, settings=settings, logger=logger)

    # ------------------------------------------------------------------ uploads

    def _require_blob_store(self) -> BlobStore:
        if self.blob_store is None:
            raise PipelineError("No blob store is configured", stage="uploads")
        return self.blob_store

    @_stage("store_upload")
    def store_upload(self, filename: str, stream: BinaryIO) -> StoredBlob:
        blob = self._require_blob_store().put(filename, stream)
        self.logger.event(
            "upload.stored",
            message=f"Stored {blob.filename}",
            data={"ref": blob.ref, "filename": blob.filename, "byte_size": blob.byte_size},
        )
        return blob

    @_stage("load_dataset")
    def load_dataset(self, ref: str, *, sheet: str | None = None) -> UploadedDataset:
        store = self._require_blob_store()
        blob = store.describe(ref)
        with store.open(ref) as handle:
            return self.reader.read(handle, filename=blob.filename, sheet=sheet)

    @_stage("read_file")
    def read_file(self, path: Path, *, sheet: str | None = None) -> UploadedDataset:
        return self.reader.read_path(path, sheet=sheet)

    # ----------------------------------------------------------- core operations

    @_stage("infer")
    def infer(self, dataset: UploadedDataset) -> list[InferredColumn]:
        return infer_columns(dataset)

    @_stage("provision_and_load")
    def provision_and_load(
        self,
        target_id: str,
        dataset: UploadedDataset,
        *,
        cancel: threading.Event | None = None,
    ) -> LoadResult:
        columns = infer_columns(dataset)
        descriptor, created = self.provisioner.ensure_table(target_id, columns, cancel=cancel)
        loaded = self.provisioner.insert(descriptor.table_name, dataset.headers, dataset.rows, cancel=cancel)
        return LoadResult(table_name=descriptor.table_name, rows_loaded=loaded, created=created)

    @_stage("suggest_mappings")
    def suggest_mappings(self, fields: Sequence[SemanticField], dataset: UploadedDataset) -> list[FieldMapping]:
        mappings = self.resolver.resolve(fields, dataset.headers)
        mapped = {m.target_field_key for m in mappings}
        self.logger.event(
            "mapping.suggested",
            data={
                "field_count": len(fields),
                "mapped_count": len(mappings),
                "unmapped_fields": [f.field_key for f in fields if f.field_key not in mapped],
            },
        )
        return mappings

    @_stage("validate")
    def validate(
        self,
        fields: Sequence[SemanticField],
        dataset: UploadedDataset,
        mode: ValidationMode = "full",
        *,
        mappings: Sequence[FieldMapping] | None = None,
    ) -> ValidationResult:
        """Validate ``dataset``; with ``mappings`` the mapped columns are checked under their field keys."""
        if mappings is not None:
            dataset = apply_mappings(dataset, mappings)
        return validate_dataset(fields, dataset, mode, logger=self.logger)

    @_stage("generate_template")
    def generate_template(self, fields: Sequence[SemanticField], sample_row_count: int | None = None) -> bytes:
        count = self.settings.template_sample_rows if sample_row_count is None else sample_row_count
        return self.templates.generate(fields, count)

    @_stage("summarize")
    def summarize(self, dataset: UploadedDataset) -> AnalyticsSummary:
        return summarize_dataset(dataset, sample_size=self.settings.summary_sample_rows)

    # ----------------------------------------------------------- table lifecycle

    @_stage("describe_table")
    def describe_table(self, target_id: str) -> RegisteredTable:
        return self.provisioner.describe(target_id)

    @_stage("list_tables")
    def list_tables(self) -> list[RegisteredTable]:
        return self.provisioner.list_tables()

    @_stage("read_rows")
    def read_rows(self, target_id: str, *, offset: int = 0, limit: int = 100) -> list[dict[str, Any]]:
        return self.provisioner.read_rows(target_id, offset=offset, limit=limit)

    @_stage("drop_table")
    def drop_table(self, target_id: str) -> str:
        return self.provisioner.drop(target_id)


__all__ = ["IngestService"]
