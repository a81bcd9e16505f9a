"""Relational storage for provisioned tables."""

from sheetbase.db.engine import build_engine, init_schema
from sheetbase.db.executor import RelationalExecutor
from sheetbase.db.provisioner import TableProvisioner
from sheetbase.db.registry import RegisteredTable

__all__ = ["RegisteredTable", "RelationalExecutor", "TableProvisioner", "build_engine", "init_schema"]
