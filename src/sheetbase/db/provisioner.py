"""Idempotent runtime provisioning of one SQL table per target id.

``ensure_table`` creates the table the first time a target is seen and returns
the recorded descriptor on every later call. Calls for the same target are
serialized by an in-process lock and, on PostgreSQL, a transaction-scoped
advisory lock. A create race lost to another process (duplicate registry row or
"table already exists") is resolved by re-reading the winner's descriptor.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from sqlalchemy.engine import Connection

from sheetbase.db import registry
from sheetbase.db.executor import DuplicateObjectError, RelationalExecutor
from sheetbase.db.identifiers import column_names_for, sanitize_identifier, table_name_for
from sheetbase.db.registry import RegisteredTable
from sheetbase.exceptions import NotFoundError, OperationCancelledError, SchemaConflictError, StorageError
from sheetbase.models import ColumnSpec, DynamicTableDescriptor, InferredColumn, InferredType, Row, StorageType
from sheetbase.observability.logger import EventLogger, NullLogger
from sheetbase.pipeline.values import cell_text, is_blank, parse_date, parse_number

STORAGE_TYPES: dict[InferredType, StorageType] = {
    InferredType.NUMBER: StorageType.NUMERIC,
    InferredType.DATE: StorageType.TIMESTAMP,
}

DEFAULT_BATCH_SIZE = 500


def storage_type_for(inferred: InferredType) -> StorageType:
    return STORAGE_TYPES.get(inferred, StorageType.TEXT)


def _accepts(existing: StorageType, requested: StorageType) -> bool:
    return existing == requested or existing == StorageType.TEXT


def _check_cancelled(cancel: threading.Event | None, target_id: str) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError(f"Provisioning for target '{target_id}' cancelled before any DDL")


def coerce_value(value: Any, storage_type: StorageType, *, row_number: int, column: str) -> Any:
    if storage_type == StorageType.TEXT:
        return None if value is None else cell_text(value)
    if is_blank(value):
        return None

    if storage_type == StorageType.NUMERIC:
        parsed = parse_number(value)
        kind = "numeric"
    else:
        parsed = parse_date(value)
        kind = "a date"
    if parsed is None:
        raise StorageError(f"Row {row_number}: value {cell_text(value)!r} for column '{column}' is not {kind}")
    return parsed


class TableProvisioner:
    """Create, load, read and drop the table that belongs to a target id."""

    def __init__(
        self,
        executor: RelationalExecutor,
        *,
        table_prefix: str = "dt_",
        max_identifier_length: int = 63,
        batch_size: int = DEFAULT_BATCH_SIZE,
        logger: EventLogger | None = None,
    ) -> None:
        self.executor = executor
        self.table_prefix = table_prefix
        self.max_identifier_length = max_identifier_length
        self.batch_size = batch_size
        self.logger = logger if logger is not None else NullLogger()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ naming

    def table_name(self, target_id: str) -> str:
        return table_name_for(target_id, prefix=self.table_prefix, max_length=self.max_identifier_length)

    def describe_columns(self, target_id: str, columns: Sequence[InferredColumn]) -> DynamicTableDescriptor:
        names = column_names_for([c.name for c in columns], max_length=self.max_identifier_length)
        specs = tuple(
            ColumnSpec(name=name, storage_type=storage_type_for(col.inferred_type), source_header=col.name)
            for name, col in zip(names, columns)
        )
        return DynamicTableDescriptor(target_id=target_id, table_name=self.table_name(target_id), columns=specs)

    def _lock_for(self, target_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(target_id, threading.Lock())

    # ------------------------------------------------------------- provisioning

    def provision(
        self,
        target_id: str,
        columns: Sequence[InferredColumn],
        *,
        cancel: threading.Event | None = None,
    ) -> str:
        descriptor, _created = self.ensure_table(target_id, columns, cancel=cancel)
        return descriptor.table_name

    def ensure_table(
        self,
        target_id: str,
        columns: Sequence[InferredColumn],
        *,
        cancel: threading.Event | None = None,
    ) -> tuple[DynamicTableDescriptor, bool]:
        """Return ``(descriptor, created)`` for ``target_id``, creating the table at most once."""
        if not target_id or not target_id.strip():
            raise ValueError("target_id must be a non-empty string")

        _check_cancelled(cancel, target_id)
        requested = self.describe_columns(target_id, columns)
        # All-blank columns store only NULLs, so any existing column type can take them.
        untyped = frozenset(
            spec.name for spec, col in zip(requested.columns, columns) if col.inferred_type == InferredType.EMPTY
        )

        with self._lock_for(target_id):
            try:
                with self.executor.transaction() as conn:
                    descriptor, created = self._ensure_in(conn, requested, untyped, cancel)
            except DuplicateObjectError:
                self.logger.event(
                    "table.create_race",
                    level=logging.DEBUG,
                    message="Table was created concurrently; reusing it",
                    data={"target_id": target_id},
                )
                descriptor, created = self._reload_winner(requested, untyped), False

        self.logger.event(
            "table.provisioned",
            message=f"{'Created' if created else 'Reused'} table {descriptor.table_name}",
            data={
                "target_id": target_id,
                "table_name": descriptor.table_name,
                "column_count": len(descriptor.columns),
                "created": created,
            },
        )
        return descriptor, created

    def _ensure_in(
        self,
        conn: Connection,
        requested: DynamicTableDescriptor,
        untyped: frozenset[str],
        cancel: threading.Event | None,
    ) -> tuple[DynamicTableDescriptor, bool]:
        self.executor.lock(conn, requested.table_name)
        record = registry.get_by_target(conn, requested.target_id)
        physical = self.executor.has_table(conn, requested.table_name)

        if record is not None and record.is_active and physical:
            self._check_compatible(record.descriptor, requested, untyped)
            return record.descriptor, False

        _check_cancelled(cancel, requested.target_id)

        if physical:
            # Table survived without an active registry row; adopt what is there.
            adopted = self._adopt(conn, requested)
            self._check_compatible(adopted, requested, untyped)
            registry.save(conn, adopted, existing=record)
            return adopted, False

        self.executor.create_table(conn, requested)
        registry.save(conn, requested, existing=record)
        return requested, True

    def _adopt(self, conn: Connection, requested: DynamicTableDescriptor) -> DynamicTableDescriptor:
        headers = {c.name: c.source_header for c in requested.columns}
        specs = tuple(
            ColumnSpec(name=name, storage_type=storage_type, source_header=headers.get(name, name))
            for name, storage_type in self.executor.reflect_columns(conn, requested.table_name)
        )
        return DynamicTableDescriptor(target_id=requested.target_id, table_name=requested.table_name, columns=specs)

    def _reload_winner(self, requested: DynamicTableDescriptor, untyped: frozenset[str]) -> DynamicTableDescriptor:
        with self.executor.transaction() as conn:
            record = registry.get_by_target(conn, requested.target_id)
        if record is None or not record.is_active:
            raise StorageError(
                f"Table for target '{requested.target_id}' was reported as existing but is not registered"
            )
        self._check_compatible(record.descriptor, requested, untyped)
        return record.descriptor

    def _check_compatible(
        self,
        existing: DynamicTableDescriptor,
        requested: DynamicTableDescriptor,
        untyped: frozenset[str] = frozenset(),
    ) -> None:
        conflicts: list[str] = []
        ignored: list[str] = []
        for col in requested.columns:
            current = existing.column(col.name)
            if current is None:
                ignored.append(col.source_header)
            elif col.name not in untyped and not _accepts(current.storage_type, col.storage_type):
                conflicts.append(
                    f"{col.name}: table stores {current.storage_type.value}, upload needs {col.storage_type.value}"
                )

        if conflicts:
            raise SchemaConflictError(
                f"Existing table {existing.table_name} for target '{existing.target_id}' is incompatible: "
                + "; ".join(conflicts),
                target_id=existing.target_id,
                conflicts=conflicts,
            )
        if ignored:
            self.logger.event(
                "table.columns_ignored",
                level=logging.WARNING,
                message=f"{len(ignored)} column(s) are not part of {existing.table_name} and will not be stored",
                data={"target_id": existing.target_id, "headers": ignored},
            )

    # ------------------------------------------------------------------- writes

    def insert(
        self,
        table_name: str,
        headers: Sequence[str],
        rows: Sequence[Row],
        *,
        cancel: threading.Event | None = None,
    ) -> int:
        """Insert all ``rows`` in one transaction. Returns the number of rows written."""
        with self.executor.transaction() as conn:
            record = registry.get_by_table(conn, table_name)
            if record is None or not record.is_active:
                raise NotFoundError(f"No provisioned table named '{table_name}'")
            descriptor = record.descriptor

            sources = self._resolve_sources(descriptor, headers)
            payload = [
                {
                    col.name: coerce_value(
                        row.get(sources[col.name]) if sources[col.name] is not None else None,
                        col.storage_type,
                        row_number=row_number,
                        column=col.name,
                    )
                    for col in descriptor.columns
                }
                for row_number, row in enumerate(rows, start=1)
            ]
            inserted, batches = self.executor.insert_rows(
                conn, descriptor, payload, batch_size=self.batch_size, cancel=cancel
            )
            registry.add_rows(conn, descriptor.target_id, inserted)

        used = {h for h in sources.values() if h is not None}
        self.logger.event(
            "table.loaded",
            message=f"Loaded {inserted} row(s) into {table_name}",
            data={
                "table_name": table_name,
                "rows_loaded": inserted,
                "batches": batches,
                "ignored_headers": [h for h in headers if h not in used],
            },
        )
        return inserted

    def _resolve_sources(self, descriptor: DynamicTableDescriptor, headers: Sequence[str]) -> dict[str, str | None]:
        """Column name -> header supplying its values (exact source header, else same sanitized name)."""
        present = set(headers)
        by_sanitized: dict[str, str] = {}
        for header in headers:
            by_sanitized.setdefault(sanitize_identifier(header), header)

        sources: dict[str, str | None] = {}
        for col in descriptor.columns:
            if col.source_header in present:
                sources[col.name] = col.source_header
            else:
                sources[col.name] = by_sanitized.get(col.name)
        return sources

    # -------------------------------------------------------------------- reads

    def describe(self, target_id: str) -> RegisteredTable:
        with self.executor.transaction() as conn:
            record = registry.get_by_target(conn, target_id)
        if record is None or not record.is_active:
            raise NotFoundError(f"No table has been provisioned for target '{target_id}'")
        return record

    def list_tables(self) -> list[RegisteredTable]:
        with self.executor.transaction() as conn:
            return registry.list_tables(conn)

    def read_rows(self, target_id: str, *, offset: int = 0, limit: int = 100) -> list[dict[str, Any]]:
        if offset < 0 or limit < 1:
            raise ValueError("offset must be >= 0 and limit >= 1")
        record = self.describe(target_id)
        with self.executor.transaction() as conn:
            return self.executor.fetch_rows(conn, record.descriptor, offset=offset, limit=limit)

    def drop(self, target_id: str) -> str:
        """Drop the target's table and mark its registry row inactive. Returns the dropped table name."""
        with self._lock_for(target_id):
            with self.executor.transaction() as conn:
                self.executor.lock(conn, self.table_name(target_id))
                record = registry.get_by_target(conn, target_id)
                if record is None or not record.is_active:
                    raise NotFoundError(f"No table has been provisioned for target '{target_id}'")
                self.executor.drop_table(conn, record.table_name)
                registry.deactivate(conn, target_id)

        self.logger.event(
            "table.dropped",
            message=f"Dropped table {record.table_name}",
            data={"target_id": target_id, "table_name": record.table_name},
        )
        return record.table_name


__all__ = ["STORAGE_TYPES", "TableProvisioner", "coerce_value", "storage_type_for"]
