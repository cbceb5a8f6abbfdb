"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, InvalidSettingError, MissingConfigurationError
from .http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
    cache_config_from_env,
)
from .logging import configure_logging, parse_log_level
from .matching import MatchingConfig, get_matching_config
from .pipeline import PipelineConfig, get_pipeline_config
from .quality import QualityConfig, get_quality_config
from .sources import AcncConfig, QldDataConfig, get_acnc_config, get_qld_data_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "AcncConfig",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidSettingError",
    "MatchingConfig",
    "MissingConfigurationError",
    "PipelineConfig",
    "QldDataConfig",
    "QualityConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "cache_config_from_env",
    "configure_logging",
    "get_acnc_config",
    "get_database_config",
    "get_matching_config",
    "get_pipeline_config",
    "get_qld_data_config",
    "get_quality_config",
    "get_storage_config",
    "parse_log_level",
    "require_env_var",
    "require_env_vars",
]
