"""SQLAlchemy-backed result sink with chunked, partially acknowledged upserts."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import create_engine, insert, make_url, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from servicefinder.config.storage import DatabaseConfig, get_database_config
from servicefinder.domain.model import NormalizedService
from servicefinder.domain.ports.persistence import (
    ClosableSink,
    CorpusSource,
    ResultSink,
    StoreError,
    StoreResult,
)

from .tables import create_all_tables, services_table

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import Connection, Engine

log = getLogger(__name__)

_SERVICE_ADAPTER: TypeAdapter[NormalizedService] = TypeAdapter(NormalizedService)


def create_sink_engine(uri: str, *, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""

    url = make_url(uri)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_engine(
            uri,
            future=True,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(uri, future=True, echo=echo)


def service_row(service: NormalizedService, *, now: datetime) -> dict[str, Any]:
    location = service.locations[0] if service.locations else None
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "address_line_1": location.address if location else None,
        "city": location.city if location else None,
        "state": location.region if location else None,
        "postcode": location.postal_code if location else None,
        "phone_primary": service.phones[0] if service.phones else None,
        "email_primary": service.emails[0] if service.emails else None,
        "website": service.urls[0] if service.urls else None,
        "categories": list(service.categories),
        "youth_specific": service.youth_specific,
        "indigenous_specific": service.indigenous_specific,
        "organization_name": service.organization.name,
        "registration_id": service.organization.registration_id,
        "data_source": ",".join(service.source_names) or None,
        "quality_score": service.quality_score,
        "payload": _SERVICE_ADAPTER.dump_python(service, mode="json"),
        "updated_at": now,
    }


class SqlAlchemyResultSink:
    """Upserts services by id, committing ``chunk_size`` records per transaction.

    A failing chunk raises ``StoreError`` carrying the count of records
    committed by earlier chunks.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        chunk_size: int = 100,
        create_tables: bool = True,
        owns_engine: bool = False,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self._engine = engine
        self._chunk_size = chunk_size
        self._owns_engine = owns_engine
        if create_tables:
            create_all_tables(engine)

    @classmethod
    def from_config(cls, config: DatabaseConfig | None = None) -> SqlAlchemyResultSink:
        database = config or get_database_config()
        return cls(
            create_sink_engine(database.uri, echo=database.echo),
            chunk_size=database.chunk_size,
            owns_engine=True,
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    async def store(self, batch: Sequence[NormalizedService]) -> StoreResult:
        return await asyncio.to_thread(self._store_sync, list(batch))

    async def load_corpus(self) -> Sequence[NormalizedService]:
        return await asyncio.to_thread(self._load_corpus_sync)

    async def aclose(self) -> None:
        if self._owns_engine:
            self._engine.dispose()

    def _store_sync(self, batch: list[NormalizedService]) -> StoreResult:
        stored = 0
        now = datetime.now(tz=UTC)
        for start in range(0, len(batch), self._chunk_size):
            chunk = batch[start : start + self._chunk_size]
            try:
                with self._engine.begin() as connection:
                    _upsert(connection, chunk, now=now)
            except SQLAlchemyError as exc:
                log.exception("Storing chunk at offset %d failed", start)
                raise StoreError(
                    f"Storing services failed after {stored} records: {exc}", stored=stored
                ) from exc
            stored += len(chunk)
        log.info("Stored %d services", stored)
        return StoreResult(stored=stored)

    def _load_corpus_sync(self) -> list[NormalizedService]:
        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    select(services_table.c.id, services_table.c.payload).order_by(
                        services_table.c.id
                    )
                ).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Loading stored services failed: {exc}") from exc

        corpus: list[NormalizedService] = []
        for service_id, payload in rows:
            try:
                corpus.append(_SERVICE_ADAPTER.validate_python(payload))
            except ValidationError as exc:
                log.warning("Skipping stored service %s with invalid payload: %s", service_id, exc)
        return corpus


def _upsert(connection: Connection, chunk: Sequence[NormalizedService], *, now: datetime) -> None:
    ids = [service.id for service in chunk]
    existing = set(
        connection.execute(
            select(services_table.c.id).where(services_table.c.id.in_(ids))
        ).scalars()
    )
    for service in chunk:
        row = service_row(service, now=now)
        if service.id in existing:
            connection.execute(
                update(services_table).where(services_table.c.id == service.id).values(**row)
            )
        else:
            connection.execute(insert(services_table).values(**row, created_at=now))


if TYPE_CHECKING:
    _sink_check: ResultSink = SqlAlchemyResultSink.from_config()
    _corpus_check: CorpusSource = SqlAlchemyResultSink.from_config()
    _closable_check: ClosableSink = SqlAlchemyResultSink.from_config()
