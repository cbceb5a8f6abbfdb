"""Fuzzy matching policy for duplicate detection."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_float
from .errors import ConfigurationError

LEGAL_SUFFIXES: frozenset[str] = frozenset(
    {
        "inc",
        "incorporated",
        "ltd",
        "limited",
        "pty",
        "proprietary",
        "co",
        "corp",
        "corporation",
        "llc",
        "plc",
        "the",
    }
)

# Tokens too common across service names to be useful as blocking keys.
BLOCKING_STOP_TOKENS: frozenset[str] = frozenset(
    {
        "and",
        "for",
        "of",
        "youth",
        "service",
        "services",
        "support",
        "community",
        "centre",
        "center",
        "australia",
        "queensland",
    }
)


@dataclass(frozen=True, slots=True)
class MatchingConfig:
    name_weight: float = 0.5
    location_weight: float = 0.3
    contact_weight: float = 0.2
    exact_threshold: float = 0.85
    probable_threshold: float = 0.65
    # contact match short-circuits to exact once the names are at least this similar
    contact_short_circuit_min_name: float = 0.5
    near_exact_name: float = 0.95
    same_location: float = 0.9
    proximity_radius_meters: float = 150.0
    proximity_falloff_meters: float = 5000.0
    blocking_min_records: int = 50
    blocking_prefix_length: int = 4
    # coordinate grid for blocking; neighbouring cells share keys
    blocking_cell_degrees: float = 0.01
    legal_suffixes: frozenset[str] = field(default_factory=lambda: LEGAL_SUFFIXES)
    blocking_stop_tokens: frozenset[str] = field(default_factory=lambda: BLOCKING_STOP_TOKENS)

    def __post_init__(self) -> None:
        weights = (self.name_weight, self.location_weight, self.contact_weight)
        if any(weight <= 0 for weight in weights):
            raise ConfigurationError("Matching weights must be positive")
        if not 0.0 < self.probable_threshold <= 1.0:
            raise ConfigurationError("probable_threshold must be within (0, 1]")
        if self.exact_threshold < self.probable_threshold:
            raise ConfigurationError("exact_threshold must be >= probable_threshold")
        if self.exact_threshold > 1.0:
            raise ConfigurationError("exact_threshold must be <= 1")
        if self.blocking_prefix_length < 1:
            raise ConfigurationError("blocking_prefix_length must be at least 1")
        if self.blocking_cell_degrees <= 0:
            raise ConfigurationError("blocking_cell_degrees must be positive")


def get_matching_config() -> MatchingConfig:
    return MatchingConfig(
        exact_threshold=env_float("SERVICEFINDER_MATCH_EXACT_THRESHOLD", 0.85, minimum=0.0),
        probable_threshold=env_float("SERVICEFINDER_MATCH_PROBABLE_THRESHOLD", 0.65, minimum=0.0),
    )
