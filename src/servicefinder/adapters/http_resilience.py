"""Async HTTP client for open data portals.

Requests go through an optional :class:`aiolimiter.AsyncLimiter`, a
retrying transport from ``httpx-retries`` and, when caching is enabled, a
hishel cache so repeated runs do not re-download unchanged CKAN payloads.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, TypedDict

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from servicefinder.config.storage import get_storage_config

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import HeaderTypes, QueryParamTypes, TimeoutTypes, URLTypes

    from servicefinder.config.http_resilience import CacheConfig, ResilienceConfig, RetryPolicy

log = logging.getLogger(__name__)


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: HeaderTypes
    transport: httpx.AsyncBaseTransport
    follow_redirects: bool


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
        backoff_jitter=policy.backoff_jitter,
    )


class ResilientClient:
    """One portal's HTTP client; adapters own it and close it in ``aclose``."""

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self.request_count = 0
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )

        # CKAN resource URLs frequently redirect to blob storage.
        options: AsyncClientOptions = {
            "timeout": config.timeout_seconds,
            "transport": RetryTransport(retry=build_retry(config.retry)),
            "headers": config.headers(),
            "follow_redirects": True,
        }
        if config.base_url is not None:
            options["base_url"] = config.base_url

        storage = _cache_storage(config.cache)
        self._client: httpx.AsyncClient = (
            AsyncCacheClient(**options, storage=storage)
            if storage is not None
            else httpx.AsyncClient(**options)
        )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: URLTypes, *, params: QueryParamTypes | None = None) -> httpx.Response:
        """Rate-limited GET that raises :class:`httpx.HTTPStatusError` on 4xx/5xx."""

        if self._limiter is None:
            response = await self._timed_get(url, params)
        else:
            async with self._limiter:
                response = await self._timed_get(url, params)
        response.raise_for_status()
        return response

    async def _timed_get(self, url: URLTypes, params: QueryParamTypes | None) -> httpx.Response:
        self.request_count += 1
        started = time.perf_counter()
        response = await self._client.get(url, params=params)
        log.debug(
            "%s GET %s -> %s in %.2fs",
            self.config.name,
            response.request.url,
            response.status_code,
            time.perf_counter() - started,
        )
        return response


def _cache_storage(config: CacheConfig | None) -> AsyncSqliteStorage | None:
    if config is None or not config.enabled:
        return None
    if config.backend == "memory":
        database_path = ":memory:"
    else:
        database_path = config.sqlite_path or str(get_storage_config().http_cache_path())
    return AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.default_ttl_seconds,
        refresh_ttl_on_access=config.refresh_ttl_on_access,
    )


def default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)
