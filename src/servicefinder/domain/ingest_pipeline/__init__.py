"""Service ingestion pipeline: normalization, quality, deduplication, orchestration."""

from __future__ import annotations

from .deduplication import DeduplicationEngine, ResolutionOutcome
from .events import EventChannel, EventKind, PipelineEvent
from .jobs import InvalidJobTransitionError, Job
from .manager import (
    AdapterRegistryFrozenError,
    AdapterStatus,
    PipelineClosedError,
    PipelineManager,
    UnknownSourceError,
)
from .matching import compare
from .merge import merge_services
from .normalization import normalize_record, normalize_records
from .quality import BatchAssessment, QualityEngine
from .stats import PipelineStats

__all__ = [
    "AdapterRegistryFrozenError",
    "AdapterStatus",
    "BatchAssessment",
    "DeduplicationEngine",
    "EventChannel",
    "EventKind",
    "InvalidJobTransitionError",
    "Job",
    "PipelineClosedError",
    "PipelineEvent",
    "PipelineManager",
    "PipelineStats",
    "QualityEngine",
    "ResolutionOutcome",
    "UnknownSourceError",
    "compare",
    "merge_services",
    "normalize_record",
    "normalize_records",
]
