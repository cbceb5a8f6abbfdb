"""Shared pieces for CKAN open-data portals (data.gov.au, data.qld.gov.au)."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from servicefinder.domain.model import ExtractionError, ExtractionErrorKind

if TYPE_CHECKING:
    from collections.abc import Mapping

    from servicefinder.adapters.http_resilience import ResilientClient

log = getLogger(__name__)

TRANSIENT_ERROR_KINDS = frozenset(
    {
        ExtractionErrorKind.TIMEOUT,
        ExtractionErrorKind.RATE_LIMITED,
        ExtractionErrorKind.UNAVAILABLE,
    }
)


class CkanAPIError(RuntimeError):
    """Raised when a CKAN action reports ``success: false``."""


class CkanModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CkanResource(CkanModel):
    id: str
    name: str | None = None
    format: str | None = None
    url: str | None = None
    datastore_active: bool = False


class CkanPackage(CkanModel):
    id: str
    name: str
    title: str | None = None
    resources: list[CkanResource] = Field(default_factory=list[CkanResource])

    def first_datastore_resource(self) -> CkanResource | None:
        return next((res for res in self.resources if res.datastore_active), None)

    def first_resource_of_format(self, fmt: str) -> CkanResource | None:
        wanted = fmt.casefold()
        return next(
            (
                res
                for res in self.resources
                if res.url and (res.format or "").strip().casefold() == wanted
            ),
            None,
        )


class CkanError(CkanModel):
    message: str | None = None
    type: str | None = Field(default=None, alias="__type")


class PackageShowResponse(CkanModel):
    success: bool
    result: CkanPackage | None = None
    error: CkanError | None = None


class DatastoreSearchResult(CkanModel):
    records: list[dict[str, object]] = Field(default_factory=list[dict[str, object]])
    total: int | None = None


class DatastoreSearchResponse(CkanModel):
    success: bool
    result: DatastoreSearchResult | None = None
    error: CkanError | None = None


async def package_show(client: ResilientClient, package_id: str) -> CkanPackage:
    response = await client.get("package_show", params={"id": package_id})
    payload = PackageShowResponse.model_validate(response.json())
    if not payload.success or payload.result is None:
        raise CkanAPIError(_error_message(payload.error, f"package_show {package_id} failed"))
    return payload.result


async def datastore_search(
    client: ResilientClient,
    *,
    resource_id: str,
    limit: int,
    offset: int,
    filters: Mapping[str, str] | None = None,
) -> DatastoreSearchResult:
    params: dict[str, str | int] = {
        "resource_id": resource_id,
        "limit": limit,
        "offset": offset,
    }
    if filters:
        params["filters"] = json.dumps(dict(filters), sort_keys=True)
    response = await client.get("datastore_search", params=params)
    payload = DatastoreSearchResponse.model_validate(response.json())
    if not payload.success or payload.result is None:
        raise CkanAPIError(_error_message(payload.error, f"datastore_search {resource_id} failed"))
    return payload.result


def _error_message(error: CkanError | None, fallback: str) -> str:
    if error is None or not error.message:
        return fallback
    return f"{fallback}: {error.message}"


def classify_error(exc: Exception) -> ExtractionErrorKind:
    """Map a client-side exception onto an extraction error kind."""

    if isinstance(exc, httpx.TimeoutException):
        return ExtractionErrorKind.TIMEOUT
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == httpx.codes.TOO_MANY_REQUESTS:
            return ExtractionErrorKind.RATE_LIMITED
        if status >= httpx.codes.INTERNAL_SERVER_ERROR:
            return ExtractionErrorKind.UNAVAILABLE
        return ExtractionErrorKind.HTTP_ERROR
    if isinstance(exc, httpx.TransportError):
        return ExtractionErrorKind.UNAVAILABLE
    if isinstance(exc, ValidationError | ValueError | CkanAPIError):
        return ExtractionErrorKind.PARSE_ERROR
    return ExtractionErrorKind.HTTP_ERROR


def extraction_error(exc: Exception, *, context: str) -> ExtractionError:
    kind = classify_error(exc)
    log.warning("%s failed (%s): %s", context, kind.value, exc)
    return ExtractionError(kind=kind, message=str(exc) or type(exc).__name__, context=context)


def only_transient(errors: list[ExtractionError]) -> bool:
    return bool(errors) and all(error.kind in TRANSIENT_ERROR_KINDS for error in errors)


# exceptions a CKAN call can raise that are reported rather than propagated
CKAN_CALL_ERRORS: tuple[type[Exception], ...] = (
    httpx.HTTPError,
    ValidationError,
    ValueError,
    CkanAPIError,
)
