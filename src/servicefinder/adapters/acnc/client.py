"""ACNC charity register adapter (data.gov.au CKAN datastore)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, NoReturn

from pydantic import ValidationError

from servicefinder.adapters.ckan import (
    CKAN_CALL_ERRORS,
    datastore_search,
    extraction_error,
    only_transient,
    package_show,
)
from servicefinder.adapters.http_resilience import ResilientClient, default_client_factory
from servicefinder.config.sources import AcncConfig, get_acnc_config
from servicefinder.domain.model import ExtractionError, ExtractionErrorKind, ExtractionStats
from servicefinder.domain.ports.fetching import (
    ExtractionResult,
    FatalExtractionError,
    SourceAdapter,
    TransientExtractionError,
)

from .translator import translate_charity

if TYPE_CHECKING:
    from collections.abc import Callable

    from servicefinder.config.http_resilience import ResilienceConfig
    from servicefinder.domain.model import SourceRecord
    from servicefinder.domain.ports.fetching import ExtractionOptions

log = getLogger(__name__)

# datastore column filters applied for the boolean job filters
_FILTER_COLUMNS: dict[str, str] = {
    "youth_only": "Youth",
    "indigenous_only": "Aboriginal_or_TSI",
}


@dataclass(slots=True)
class AcncAdapter:
    """Pages through the register; one failed page is reported, not fatal."""

    config: AcncConfig = field(default_factory=get_acnc_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)
    _resource_id: str | None = field(default=None, init=False, repr=False)

    async def extract(self, options: ExtractionOptions) -> ExtractionResult:
        client = self._ensure_client()
        errors: list[ExtractionError] = []
        resource_id = await self._resolve_resource_id(client, errors)
        if resource_id is None:
            _raise_for_empty(errors)

        filters = {
            column: "Y" for flag, column in _FILTER_COLUMNS.items() if options.flag(flag)
        }
        extracted_at = datetime.now(tz=UTC)
        records: list[SourceRecord] = []
        total: int | None = None
        offset = 0
        page_size = self.config.page_size
        while options.limit is None or len(records) < options.limit:
            wanted = (
                page_size if options.limit is None else min(page_size, options.limit - len(records))
            )
            try:
                page = await datastore_search(
                    client,
                    resource_id=resource_id,
                    limit=wanted,
                    offset=offset,
                    filters=filters,
                )
            except CKAN_CALL_ERRORS as exc:
                errors.append(extraction_error(exc, context=f"acnc offset={offset}"))
                if total is None:
                    break
                offset += wanted
                if offset >= total:
                    break
                continue

            total = page.total if page.total is not None else total
            for row in page.records:
                record = self._translate(row, resource_id, extracted_at, errors)
                if record is not None:
                    records.append(record)
            offset += len(page.records)
            if not page.records or (total is not None and offset >= total):
                break

        if not records and errors:
            _raise_for_empty(errors)
        if options.limit is not None:
            records = records[: options.limit]
        log.info("ACNC: fetched %d charities (%d errors)", len(records), len(errors))
        return ExtractionResult(
            records=records,
            stats=ExtractionStats(estimated_total=total, fetched=len(records)),
            errors=errors,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return self._client

    async def _resolve_resource_id(
        self, client: ResilientClient, errors: list[ExtractionError]
    ) -> str | None:
        if self.config.resource_id:
            return self.config.resource_id
        if self._resource_id is not None:
            return self._resource_id
        try:
            package = await package_show(client, self.config.package_id)
        except CKAN_CALL_ERRORS as exc:
            errors.append(extraction_error(exc, context=f"acnc package {self.config.package_id}"))
            return None
        resource = package.first_datastore_resource()
        if resource is None:
            errors.append(
                ExtractionError(
                    kind=ExtractionErrorKind.PARSE_ERROR,
                    message=f"Package {package.name} has no datastore resource",
                    context="acnc",
                )
            )
            return None
        self._resource_id = resource.id
        return resource.id

    def _translate(
        self,
        row: dict[str, object],
        resource_id: str,
        extracted_at: datetime,
        errors: list[ExtractionError],
    ) -> SourceRecord | None:
        try:
            return translate_charity(
                row,
                extracted_at=extracted_at,
                source_url=self._resource_url(resource_id),
            )
        except ValidationError as exc:
            errors.append(
                ExtractionError(
                    kind=ExtractionErrorKind.INVALID_RECORD,
                    message=f"{exc.error_count()} validation errors",
                    context=f"acnc row {row.get('_id', '?')}",
                )
            )
            return None

    def _resource_url(self, resource_id: str) -> str:
        base_url = self.config.resilience.base_url or ""
        return f"{base_url}datastore_search?resource_id={resource_id}"


def _raise_for_empty(errors: list[ExtractionError]) -> NoReturn:
    summary = "; ".join(error.message for error in errors) or "no data"
    if only_transient(errors):
        raise TransientExtractionError(f"ACNC register temporarily unavailable: {summary}")
    raise FatalExtractionError(f"ACNC register unavailable: {summary}")


if TYPE_CHECKING:
    _adapter_check: SourceAdapter = AcncAdapter()
