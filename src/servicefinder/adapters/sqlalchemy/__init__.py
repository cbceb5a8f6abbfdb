"""SQLAlchemy result sink for stored services."""

from __future__ import annotations

from .sink import SqlAlchemyResultSink, create_sink_engine, service_row
from .tables import create_all_tables, metadata, services_table

__all__ = [
    "SqlAlchemyResultSink",
    "create_all_tables",
    "create_sink_engine",
    "metadata",
    "service_row",
    "services_table",
]
