"""Table metadata for stored services."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    MetaData,
    String,
    Table,
    Text,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

metadata = MetaData()

services_table = Table(
    "services",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=True),
    Column("address_line_1", String(255), nullable=True),
    Column("city", String(100), nullable=True),
    Column("state", String(10), nullable=True),
    Column("postcode", String(10), nullable=True),
    Column("phone_primary", String(50), nullable=True),
    Column("email_primary", String(255), nullable=True),
    Column("website", String(255), nullable=True),
    Column("categories", JSON, nullable=False, default=list),
    Column("youth_specific", Boolean, nullable=False, default=False),
    Column("indigenous_specific", Boolean, nullable=False, default=False),
    Column("organization_name", String(255), nullable=True),
    Column("registration_id", String(50), nullable=True),
    Column("data_source", String(100), nullable=True),
    Column("quality_score", Float, nullable=True),
    Column("payload", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("ix_services_state", "state"),
    Index("ix_services_youth_specific", "youth_specific"),
    Index("ix_services_data_source", "data_source"),
    Index("ix_services_name", "name"),
)


def create_all_tables(engine: Engine) -> None:
    metadata.create_all(engine)
