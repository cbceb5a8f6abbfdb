"""Queensland open data portal adapter (CKAN package lookup + CSV download)."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, NoReturn

from pydantic import ValidationError

from servicefinder.adapters.ckan import (
    CKAN_CALL_ERRORS,
    CkanAPIError,
    extraction_error,
    only_transient,
    package_show,
)
from servicefinder.adapters.http_resilience import ResilientClient, default_client_factory
from servicefinder.config.sources import QldDataConfig, get_qld_data_config
from servicefinder.domain.model import ExtractionError, ExtractionErrorKind, ExtractionStats
from servicefinder.domain.ports.fetching import (
    ExtractionResult,
    FatalExtractionError,
    SourceAdapter,
    TransientExtractionError,
)

from .translator import is_youth_dataset, translate_row

if TYPE_CHECKING:
    from collections.abc import Callable

    from servicefinder.config.http_resilience import ResilienceConfig
    from servicefinder.domain.model import SourceRecord
    from servicefinder.domain.ports.fetching import ExtractionOptions

log = getLogger(__name__)


@dataclass(slots=True)
class QldDataAdapter:
    """Each selected dataset is fetched independently; a failed dataset is reported.

    ``options.datasets`` selects datasets by their configured name; names that
    are not configured are treated as CKAN package ids. A youth-only extraction
    reads only datasets catalogued as youth justice, so bare package ids are
    skipped.
    """

    config: QldDataConfig = field(default_factory=get_qld_data_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def extract(self, options: ExtractionOptions) -> ExtractionResult:
        client = self._ensure_client()
        datasets = options.datasets or tuple(self.config.datasets)
        youth_only = options.flag("youth_only")
        extracted_at = datetime.now(tz=UTC)
        records: list[SourceRecord] = []
        errors: list[ExtractionError] = []
        estimated_total = 0
        attempted = 0
        failed = 0

        for dataset in datasets:
            if options.limit is not None and len(records) >= options.limit:
                break
            if youth_only and not is_youth_dataset(dataset):
                log.debug("Skipping dataset %s for a youth-only extraction", dataset)
                continue
            attempted += 1
            try:
                rows, source_url = await self._fetch_dataset(client, dataset)
            except CKAN_CALL_ERRORS as exc:
                errors.append(extraction_error(exc, context=f"qld-data dataset {dataset}"))
                failed += 1
                continue

            estimated_total += len(rows)
            for index, row in enumerate(rows):
                if options.limit is not None and len(records) >= options.limit:
                    break
                try:
                    records.append(
                        translate_row(
                            row,
                            dataset=dataset,
                            extracted_at=extracted_at,
                            source_url=source_url,
                        )
                    )
                except ValidationError as exc:
                    errors.append(
                        ExtractionError(
                            kind=ExtractionErrorKind.INVALID_RECORD,
                            message=_describe_invalid_row(exc),
                            context=f"qld-data {dataset} row {index + 1}",
                        )
                    )

        if not records and attempted and failed == attempted:
            _raise_for_empty(errors)
        log.info("QLD data: fetched %d services (%d errors)", len(records), len(errors))
        return ExtractionResult(
            records=records,
            stats=ExtractionStats(estimated_total=estimated_total, fetched=len(records)),
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

    async def _fetch_dataset(
        self, client: ResilientClient, dataset: str
    ) -> tuple[list[dict[str, str | None]], str]:
        package_id = self.config.datasets.get(dataset, dataset)
        package = await package_show(client, package_id)
        resource = package.first_resource_of_format("csv")
        if resource is None or resource.url is None:
            raise CkanAPIError(f"Package {package.name} has no CSV resource")
        response = await client.get(resource.url)
        reader = csv.DictReader(io.StringIO(response.text.lstrip("\ufeff")))
        rows = list(reader)
        log.debug("QLD data: %s returned %d rows", dataset, len(rows))
        return rows, resource.url


def _describe_invalid_row(exc: ValidationError) -> str:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'row'}: {error['msg']}"
        for error in exc.errors()
    )
    return f"invalid row ({problems})"


def _raise_for_empty(errors: list[ExtractionError]) -> NoReturn:
    summary = "; ".join(error.message for error in errors)
    if only_transient(errors):
        raise TransientExtractionError(f"QLD open data temporarily unavailable: {summary}")
    raise FatalExtractionError(f"QLD open data unavailable: {summary}")


if TYPE_CHECKING:
    _adapter_check: SourceAdapter = QldDataAdapter()
