"""Quality scoring policy."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from .errors import ConfigurationError

DEFAULT_CATEGORIES: frozenset[str] = frozenset(
    {"general", "other", "community_services", "uncategorised"}
)


@dataclass(frozen=True, slots=True)
class QualityConfig:
    completeness_weight: float = 0.5
    contactability_weight: float = 0.3
    specificity_weight: float = 0.2
    excellent_threshold: float = 0.9
    good_threshold: float = 0.7
    fair_threshold: float = 0.4
    website_only_contactability: float = 0.4
    top_issues: int = 5
    default_categories: frozenset[str] = field(default_factory=lambda: DEFAULT_CATEGORIES)

    def __post_init__(self) -> None:
        weights = (self.completeness_weight, self.contactability_weight, self.specificity_weight)
        if any(weight < 0 for weight in weights):
            raise ConfigurationError("Quality weights must not be negative")
        if not math.isclose(sum(weights), 1.0, abs_tol=1e-9):
            raise ConfigurationError(f"Quality weights must sum to 1, got {sum(weights)}")
        if not self.excellent_threshold >= self.good_threshold >= self.fair_threshold:
            raise ConfigurationError("Quality bucket thresholds must be descending")


def get_quality_config() -> QualityConfig:
    return QualityConfig()
