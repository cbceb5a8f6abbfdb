"""Job specification, result and point-in-time snapshot types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from servicefinder.domain.model.enums import JobState
    from servicefinder.domain.model.extraction import ExtractionError
    from servicefinder.domain.model.matching import MatchCandidatePair
    from servicefinder.domain.model.quality import QualitySummary
    from servicefinder.domain.model.service import NormalizedService


_OPTION_ALIASES: dict[str, str] = {
    "enableQualityAssessment": "enable_quality_assessment",
    "minQualityScore": "min_quality_score",
    "enableDeduplication": "enable_deduplication",
    "storeResults": "store_results",
    "dedupeAgainstStored": "dedupe_against_stored",
    "youthOnly": "youth_only",
}
_IGNORED_OPTIONS = frozenset({"type"})


@dataclass(frozen=True, slots=True, kw_only=True)
class JobSpec:
    """Options recognised by ``PipelineManager.create_job``.

    ``filters`` and ``datasets`` are handed to the adapter unmodified.
    ``min_quality_score`` of ``None`` falls back to the manager's configured default.
    """

    source: str
    limit: int | None = None
    filters: Mapping[str, object] = field(default_factory=dict[str, object])
    datasets: tuple[str, ...] | None = None
    enable_quality_assessment: bool = True
    min_quality_score: float | None = None
    enable_deduplication: bool = True
    store_results: bool = False
    dedupe_against_stored: bool = False

    def __post_init__(self) -> None:
        if not self.source:
            raise ValueError("JobSpec.source must not be empty")
        if self.limit is not None and self.limit < 0:
            raise ValueError("JobSpec.limit must not be negative")
        if self.min_quality_score is not None and not 0.0 <= self.min_quality_score <= 1.0:
            raise ValueError("JobSpec.min_quality_score must be within [0, 1]")
        object.__setattr__(self, "filters", MappingProxyType(dict(self.filters)))

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> JobSpec:
        """Build a spec from a loose option mapping (snake_case or camelCase keys).

        Unrecognised keys are treated as source-specific filters.
        """

        if "source" not in options:
            raise ValueError("Job options must include a 'source'")
        known: dict[str, Any] = {}
        filters: dict[str, object] = dict(options.get("filters") or {})
        for raw_key, value in options.items():
            if raw_key in {"filters"} | _IGNORED_OPTIONS:
                continue
            key = _OPTION_ALIASES.get(raw_key, raw_key)
            if key == "youth_only":
                filters["youth_only"] = bool(value)
            elif key in _SPEC_FIELDS:
                known[key] = value
            else:
                filters[key] = value
        if known.get("datasets") is not None:
            known["datasets"] = tuple(known["datasets"])
        return cls(**known, filters=filters)


_SPEC_FIELDS = frozenset(
    {
        "source",
        "limit",
        "datasets",
        "enable_quality_assessment",
        "min_quality_score",
        "enable_deduplication",
        "store_results",
        "dedupe_against_stored",
    }
)


@dataclass(frozen=True, slots=True, kw_only=True)
class JobResult:
    services_processed: int = 0
    services_stored: int = 0
    duplicates_found: int = 0
    duplicates_merged: int = 0
    records_dropped_invalid: int = 0
    records_dropped_low_quality: int = 0
    processing_time: float = 0.0
    quality: QualitySummary | None = None
    services: tuple[NormalizedService, ...] = ()
    probable_duplicates: tuple[MatchCandidatePair, ...] = ()
    extraction_errors: tuple[ExtractionError, ...] = ()
    store_errors: tuple[str, ...] = ()

    @property
    def records_dropped(self) -> int:
        return self.records_dropped_invalid + self.records_dropped_low_quality


@dataclass(frozen=True, slots=True)
class JobFailure:
    error_type: str
    message: str


@dataclass(frozen=True, slots=True, kw_only=True)
class JobSnapshot:
    """Point-in-time, read-only view of a job."""

    id: str
    source: str
    spec: JobSpec
    state: JobState
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    result: JobResult | None = None
    error: JobFailure | None = None
