"""Shared pytest fixtures."""

from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from sheetbase.db.engine import build_engine, init_schema
from sheetbase.db.executor import RelationalExecutor
from sheetbase.db.provisioner import TableProvisioner
from sheetbase.io.blob import FilesystemBlobStore
from sheetbase.models import SemanticField, UploadedDataset
from sheetbase.observability.logger import NullLogger
from sheetbase.service import IngestService
from sheetbase.settings import Settings, reload_settings

FIXED_TODAY = date(2024, 3, 1)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run every test from an empty directory with no SHEETBASE_* variables."""
    for key in list(os.environ):
        if key.startswith("SHEETBASE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    reload_settings()
    yield
    reload_settings()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'sheetbase.sqlite'}",
        blob_dir=tmp_path / "uploads",
        insert_batch_size=2,
    )


@pytest.fixture()
def engine(settings: Settings) -> Iterator[Engine]:
    engine = build_engine(settings)
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def provisioner(engine: Engine, settings: Settings) -> TableProvisioner:
    return TableProvisioner(
        RelationalExecutor(engine),
        table_prefix=settings.table_prefix,
        max_identifier_length=settings.max_identifier_length,
        batch_size=settings.insert_batch_size,
    )


@pytest.fixture()
def service(provisioner: TableProvisioner, settings: Settings) -> IngestService:
    return IngestService(
        provisioner=provisioner,
        blob_store=FilesystemBlobStore(settings.blob_dir, max_bytes=settings.max_upload_bytes),
        settings=settings,
        logger=NullLogger(),
        clock=lambda: FIXED_TODAY,
    )


@pytest.fixture()
def people() -> UploadedDataset:
    return UploadedDataset(
        headers=["Name", "Email", "Amount"],
        rows=[
            {"Name": "A", "Email": "a@x.com", "Amount": "10"},
            {"Name": "B", "Email": "bad", "Amount": "20"},
        ],
    )


@pytest.fixture()
def fields() -> list[SemanticField]:
    return [
        SemanticField(field_key="name", display_name="Name", value_type="text", required=True, order=1),
        SemanticField(field_key="email", display_name="Employee Email", value_type="email", required=True, order=2),
        SemanticField(field_key="amount", display_name="Amount", value_type="number", order=3),
    ]
