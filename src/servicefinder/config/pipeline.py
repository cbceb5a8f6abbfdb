"""Orchestration defaults for the pipeline manager."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int
from .errors import ConfigurationError

DEFAULT_MAX_CONCURRENT_JOBS = 3


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    max_concurrent_jobs: int = DEFAULT_MAX_CONCURRENT_JOBS
    extract_timeout_seconds: float = 120.0
    store_timeout_seconds: float = 60.0
    max_attempts: int = 3
    retry_backoff_seconds: float = 0.5
    max_backoff_seconds: float = 30.0
    drain_timeout_seconds: float = 30.0
    test_timeout_seconds: float = 30.0
    min_quality_score: float = 0.0

    def __post_init__(self) -> None:
        if self.max_concurrent_jobs < 1:
            raise ConfigurationError("max_concurrent_jobs must be at least 1")
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if not 0.0 <= self.min_quality_score <= 1.0:
            raise ConfigurationError("min_quality_score must be within [0, 1]")

    def backoff_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""

        return min(self.retry_backoff_seconds * (2 ** (attempt - 1)), self.max_backoff_seconds)


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        max_concurrent_jobs=env_int(
            "SERVICEFINDER_MAX_CONCURRENT_JOBS", DEFAULT_MAX_CONCURRENT_JOBS, minimum=1
        ),
        extract_timeout_seconds=env_float(
            "SERVICEFINDER_EXTRACT_TIMEOUT_SECONDS", 120.0, minimum=0.0
        ),
        store_timeout_seconds=env_float("SERVICEFINDER_STORE_TIMEOUT_SECONDS", 60.0, minimum=0.0),
        max_attempts=env_int("SERVICEFINDER_MAX_ATTEMPTS", 3, minimum=1),
        retry_backoff_seconds=env_float("SERVICEFINDER_RETRY_BACKOFF_SECONDS", 0.5, minimum=0.0),
        drain_timeout_seconds=env_float("SERVICEFINDER_DRAIN_TIMEOUT_SECONDS", 30.0, minimum=0.0),
        min_quality_score=env_float("SERVICEFINDER_MIN_QUALITY_SCORE", 0.0, minimum=0.0),
    )
