"""Settings for the HTTP client that talks to open data portals."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Literal

import httpx

from .env import env_str
from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

CacheBackend = Literal["sqlite", "memory"]

DEFAULT_USER_AGENT: Final[str] = "servicefinder/0.1 (community service directory ingestion)"
# CKAN metadata and CSV exports are republished at most daily.
DEFAULT_CACHE_TTL_SECONDS: Final[float] = 3600.0

_CACHE_MODES: Final[dict[str, CacheBackend | None]] = {
    "memory": "memory",
    "sqlite": "sqlite",
    "off": None,
}


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Per-request retries applied by the transport.

    These cover a single portal request. Retrying a whole extraction job is
    configured separately on :class:`~servicefinder.config.PipelineConfig`.
    """

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = frozenset({"GET", "HEAD"})
    status_forcelist: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )
    backoff_jitter: float = 1.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float

    def __post_init__(self) -> None:
        if self.max_calls < 1 or self.per_seconds <= 0:
            raise ConfigurationError(
                f"Rate limit needs max_calls >= 1 and per_seconds > 0, got {self}"
            )


@dataclass(slots=True, frozen=True)
class CacheConfig:
    enabled: bool = True
    backend: CacheBackend = "memory"
    sqlite_path: str | None = None
    default_ttl_seconds: float | None = DEFAULT_CACHE_TTL_SECONDS
    refresh_ttl_on_access: bool = False

    def __post_init__(self) -> None:
        if self.backend not in ("sqlite", "memory"):
            raise ConfigurationError(f"Unsupported cache backend: {self.backend}")


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    """Everything a source adapter needs to build its HTTP client."""

    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = field(default_factory=CacheConfig)
    user_agent: str = DEFAULT_USER_AGENT
    extra_headers: Mapping[str, str] | None = None

    def headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if self.extra_headers:
            headers.update(self.extra_headers)
        return headers


def cache_config_from_env(*, ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS) -> CacheConfig | None:
    """Read ``SERVICEFINDER_HTTP_CACHE`` (``memory``, ``sqlite`` or ``off``)."""

    mode = env_str("SERVICEFINDER_HTTP_CACHE", "memory").lower()
    if mode not in _CACHE_MODES:
        choices = ", ".join(_CACHE_MODES)
        raise ConfigurationError(f"SERVICEFINDER_HTTP_CACHE must be one of {choices}, got {mode!r}")
    backend = _CACHE_MODES[mode]
    if backend is None:
        return None
    return CacheConfig(backend=backend, default_ttl_seconds=ttl_seconds)
