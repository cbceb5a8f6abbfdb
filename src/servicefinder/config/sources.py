"""External source configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .env import env_str
from .http_resilience import RateLimit, ResilienceConfig, cache_config_from_env

ACNC_BASE_URL = "https://data.gov.au/data/api/3/action/"
ACNC_PACKAGE_ID = "acnc-register"
ACNC_TIMEOUT_SECONDS = 20.0
ACNC_PAGE_SIZE = 100

QLD_DATA_BASE_URL = "https://www.data.qld.gov.au/api/3/action/"
QLD_DATA_TIMEOUT_SECONDS = 30.0
QLD_DATA_DEFAULT_DATASETS: dict[str, str] = {
    "youth_justice_centres": "youth-justice-centre-locations",
    "youth_justice_service_centres": "youth-justice-service-centres",
    "community_services": "community-support-services-directory",
}


def _acnc_resilience(base_url: str) -> ResilienceConfig:
    return ResilienceConfig(
        name="acnc",
        base_url=base_url,
        timeout_seconds=ACNC_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        cache=cache_config_from_env(),
    )


def _qld_resilience(base_url: str) -> ResilienceConfig:
    return ResilienceConfig(
        name="qld-data",
        base_url=base_url,
        timeout_seconds=QLD_DATA_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        cache=cache_config_from_env(),
    )


@dataclass(frozen=True, slots=True)
class AcncConfig:
    """Holds ACNC charity register (data.gov.au CKAN) configuration values."""

    resilience: ResilienceConfig
    package_id: str = ACNC_PACKAGE_ID
    resource_id: str | None = None
    page_size: int = ACNC_PAGE_SIZE


@dataclass(frozen=True, slots=True)
class QldDataConfig:
    """Holds Queensland open data portal configuration values."""

    resilience: ResilienceConfig
    datasets: dict[str, str] = field(default_factory=lambda: dict(QLD_DATA_DEFAULT_DATASETS))


def get_acnc_config(*, resilience: ResilienceConfig | None = None) -> AcncConfig:
    base_url = env_str("ACNC_BASE_URL", ACNC_BASE_URL)
    return AcncConfig(
        resilience=resilience or _acnc_resilience(base_url),
        package_id=env_str("ACNC_PACKAGE_ID", ACNC_PACKAGE_ID),
        resource_id=os.getenv("ACNC_RESOURCE_ID") or None,
    )


def get_qld_data_config(*, resilience: ResilienceConfig | None = None) -> QldDataConfig:
    base_url = env_str("QLD_DATA_BASE_URL", QLD_DATA_BASE_URL)
    return QldDataConfig(resilience=resilience or _qld_resilience(base_url))
