"""
sheetbase.db.engine

SQLAlchemy engine helpers.

Rules:
- Settings are defined ONLY in sheetbase.settings.Settings (Pydantic).
- This module does NOT read env vars directly.
- SQLite (dev/tests) gets pragmas and a static pool for in-memory URLs; other
  backends use a pre-pinged connection pool.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.pool import NullPool, StaticPool

from sheetbase.db.schema import metadata
from sheetbase.exceptions import ConfigError
from sheetbase.settings import Settings, get_settings

SQLITE_BUSY_TIMEOUT_MS = 30_000


def _is_sqlite_memory(url: URL) -> bool:
    db = (url.database or "").strip()
    if not db or db == ":memory:":
        return True
    if db.startswith("file:") and (url.query or {}).get("mode") == "memory":
        return True
    return False


def _ensure_sqlite_parent_dir(url: URL) -> None:
    db = (url.database or "").strip()
    if not db or db == ":memory:" or db.startswith("file:"):
        return

    path = Path(db)
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)


def _create_sqlite_engine(url: URL, settings: Settings) -> Engine:
    _ensure_sqlite_parent_dir(url)
    is_memory = _is_sqlite_memory(url)

    engine = create_engine(
        url,
        echo=settings.database_echo,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool if is_memory else NullPool,
    )

    @event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_conn, _):
        cur = dbapi_conn.cursor()
        try:
            cur.execute("PRAGMA foreign_keys=ON")
            cur.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        finally:
            cur.close()

    return engine


def build_engine(settings: Settings | None = None) -> Engine:
    settings = settings or get_settings()
    if not settings.database_url:
        raise ConfigError("Settings.database_url is required.")
    try:
        url = make_url(settings.database_url)
    except ArgumentError as exc:
        raise ConfigError(f"Invalid database_url: {exc}") from exc

    if url.get_backend_name() == "sqlite":
        return _create_sqlite_engine(url, settings)

    return create_engine(url, echo=settings.database_echo, pool_pre_ping=True)


def init_schema(engine: Engine) -> None:
    """Create the table registry if it does not exist yet."""
    metadata.create_all(engine)


__all__ = ["build_engine", "init_schema"]
