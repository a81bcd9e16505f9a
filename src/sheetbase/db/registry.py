"""Core queries against the ``dynamic_tables`` registry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection

from sheetbase.db.schema import dynamic_tables, utc_now
from sheetbase.models import ColumnSpec, DynamicTableDescriptor, StorageType


@dataclass(frozen=True)
class RegisteredTable:
    descriptor: DynamicTableDescriptor
    total_rows: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @property
    def table_name(self) -> str:
        return self.descriptor.table_name


def columns_to_json(descriptor: DynamicTableDescriptor) -> list[dict[str, Any]]:
    return [
        {"name": c.name, "storage_type": c.storage_type.value, "source_header": c.source_header}
        for c in descriptor.columns
    ]


def _record(row: Any) -> RegisteredTable:
    m = row._mapping
    columns = tuple(
        ColumnSpec(
            name=item["name"],
            storage_type=StorageType(item["storage_type"]),
            source_header=item.get("source_header", item["name"]),
        )
        for item in m["columns"] or []
    )
    return RegisteredTable(
        descriptor=DynamicTableDescriptor(target_id=m["target_id"], table_name=m["table_name"], columns=columns),
        total_rows=m["total_rows"],
        is_active=m["is_active"],
        created_at=m["created_at"],
        updated_at=m["updated_at"],
    )


def get_by_target(conn: Connection, target_id: str) -> RegisteredTable | None:
    row = conn.execute(select(dynamic_tables).where(dynamic_tables.c.target_id == target_id)).first()
    return None if row is None else _record(row)


def get_by_table(conn: Connection, table_name: str) -> RegisteredTable | None:
    row = conn.execute(select(dynamic_tables).where(dynamic_tables.c.table_name == table_name)).first()
    return None if row is None else _record(row)


def list_tables(conn: Connection, *, include_inactive: bool = False) -> list[RegisteredTable]:
    stmt = select(dynamic_tables).order_by(dynamic_tables.c.target_id)
    if not include_inactive:
        stmt = stmt.where(dynamic_tables.c.is_active.is_(True))
    return [_record(row) for row in conn.execute(stmt)]


def save(conn: Connection, descriptor: DynamicTableDescriptor, *, existing: RegisteredTable | None) -> None:
    """Insert the registry row, or re-activate a dropped one with new columns."""
    if existing is None:
        conn.execute(
            insert(dynamic_tables).values(
                target_id=descriptor.target_id,
                table_name=descriptor.table_name,
                columns=columns_to_json(descriptor),
                total_rows=0,
                is_active=True,
            )
        )
        return

    conn.execute(
        update(dynamic_tables)
        .where(dynamic_tables.c.target_id == descriptor.target_id)
        .values(columns=columns_to_json(descriptor), total_rows=0, is_active=True, updated_at=utc_now())
    )


def add_rows(conn: Connection, target_id: str, count: int) -> None:
    conn.execute(
        update(dynamic_tables)
        .where(dynamic_tables.c.target_id == target_id)
        .values(total_rows=dynamic_tables.c.total_rows + count, updated_at=utc_now())
    )


def deactivate(conn: Connection, target_id: str) -> int:
    result = conn.execute(
        update(dynamic_tables)
        .where(dynamic_tables.c.target_id == target_id, dynamic_tables.c.is_active.is_(True))
        .values(is_active=False, total_rows=0, updated_at=utc_now())
    )
    return result.rowcount


__all__ = [
    "RegisteredTable",
    "add_rows",
    "columns_to_json",
    "deactivate",
    "get_by_table",
    "get_by_target",
    "list_tables",
    "save",
]
