"""Relational execution for provisioned tables (SQLAlchemy Core)."""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Column, DateTime, Integer, MetaData, Numeric, Table, Text, inspect, insert, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.types import Date, Float, TypeEngine

from sheetbase.db.identifiers import ROW_ID_COLUMN
from sheetbase.exceptions import OperationCancelledError, StorageError
from sheetbase.models import DynamicTableDescriptor, Row, StorageType

POSTGRES_ADVISORY_XACT_LOCK = "SELECT pg_advisory_xact_lock(:key)"

SQL_TYPES: dict[StorageType, TypeEngine] = {
    StorageType.NUMERIC: Numeric(asdecimal=False),
    StorageType.TIMESTAMP: DateTime(),
    StorageType.TEXT: Text(),
}


class DuplicateObjectError(StorageError):
    """A concurrent writer created the same table or registry row first."""


def _is_duplicate(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, IntegrityError):
        return True
    message = str(getattr(exc, "orig", None) or exc).lower()
    return "already exists" in message or "duplicate" in message


def storage_type_of(sql_type: TypeEngine) -> StorageType:
    if isinstance(sql_type, (Numeric, Integer, Float)):
        return StorageType.NUMERIC
    if isinstance(sql_type, (DateTime, Date)):
        return StorageType.TIMESTAMP
    return StorageType.TEXT


def advisory_key(name: str) -> int:
    """Signed 64-bit lock key derived from ``name``."""
    return int.from_bytes(hashlib.sha256(name.encode("utf-8")).digest()[:8], "big", signed=True)


def build_table(descriptor: DynamicTableDescriptor) -> Table:
    columns = [Column(ROW_ID_COLUMN, Integer, primary_key=True, autoincrement=True)]
    columns.extend(Column(c.name, SQL_TYPES[c.storage_type], nullable=True) for c in descriptor.columns)
    return Table(descriptor.table_name, MetaData(), *columns)


class RelationalExecutor:
    """Existence checks, DDL, batched inserts and paged reads against one engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection inside one transaction; database errors become :class:`StorageError`."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            if _is_duplicate(exc):
                raise DuplicateObjectError(f"Object already exists: {exc}") from exc
            raise StorageError(f"Database operation failed: {exc}") from exc

    def lock(self, conn: Connection, name: str) -> None:
        """Hold a transaction-scoped advisory lock on backends that offer one."""
        if self.dialect_name == "postgresql":
            conn.execute(text(POSTGRES_ADVISORY_XACT_LOCK), {"key": advisory_key(name)})

    def has_table(self, conn: Connection, table_name: str) -> bool:
        return inspect(conn).has_table(table_name)

    def reflect_columns(self, conn: Connection, table_name: str) -> list[tuple[str, StorageType]]:
        return [
            (col["name"], storage_type_of(col["type"]))
            for col in inspect(conn).get_columns(table_name)
            if col["name"] != ROW_ID_COLUMN
        ]

    def create_table(self, conn: Connection, descriptor: DynamicTableDescriptor) -> None:
        build_table(descriptor).create(conn)

    def drop_table(self, conn: Connection, table_name: str) -> None:
        Table(table_name, MetaData()).drop(conn, checkfirst=True)

    def insert_rows(
        self,
        conn: Connection,
        descriptor: DynamicTableDescriptor,
        rows: Sequence[Row],
        *,
        batch_size: int,
        cancel: threading.Event | None = None,
    ) -> tuple[int, int]:
        """Insert ``rows`` in chunks. Returns ``(rows inserted, batches executed)``."""
        if not rows or not descriptor.columns:
            return 0, 0

        table = build_table(descriptor)
        stmt = insert(table)
        inserted = 0
        batches = 0
        for start in range(0, len(rows), batch_size):
            if cancel is not None and cancel.is_set():
                raise OperationCancelledError(
                    f"Load into {descriptor.table_name} cancelled after {inserted} rows; nothing was committed"
                )
            chunk = rows[start : start + batch_size]
            conn.execute(stmt, list(chunk))
            inserted += len(chunk)
            batches += 1
        return inserted, batches

    def fetch_rows(
        self,
        conn: Connection,
        descriptor: DynamicTableDescriptor,
        *,
        offset: int = 0,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        if not descriptor.columns:
            return []
        table = build_table(descriptor)
        data_columns = [table.c[c.name] for c in descriptor.columns]
        stmt = select(*data_columns).order_by(table.c[ROW_ID_COLUMN]).offset(offset).limit(limit)
        return [dict(row) for row in conn.execute(stmt).mappings()]


__all__ = [
    "DuplicateObjectError",
    "RelationalExecutor",
    "SQL_TYPES",
    "advisory_key",
    "build_table",
    "storage_type_of",
]
