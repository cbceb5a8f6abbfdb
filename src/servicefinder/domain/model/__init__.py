"""Domain model for service ingestion."""

from __future__ import annotations

from .enums import (
    ContactKind,
    ExtractionErrorKind,
    IssueKind,
    JobState,
    MatchClassification,
    QualityBucket,
)
from .extraction import ExtractionError, ExtractionStats
from .jobs import JobFailure, JobResult, JobSnapshot, JobSpec
from .matching import DeduplicationStats, DuplicateReport, MatchCandidatePair, SimilarityScores
from .quality import IssueCount, QualityIssue, QualityReport, QualitySummary
from .service import (
    AgeRange,
    ContactChannel,
    Location,
    NormalizedService,
    Organization,
    Provenance,
    SourceRecord,
)

__all__ = [
    "AgeRange",
    "ContactChannel",
    "ContactKind",
    "DeduplicationStats",
    "DuplicateReport",
    "ExtractionError",
    "ExtractionErrorKind",
    "ExtractionStats",
    "IssueCount",
    "IssueKind",
    "JobFailure",
    "JobResult",
    "JobSnapshot",
    "JobSpec",
    "JobState",
    "Location",
    "MatchCandidatePair",
    "MatchClassification",
    "NormalizedService",
    "Organization",
    "Provenance",
    "QualityBucket",
    "QualityIssue",
    "QualityReport",
    "QualitySummary",
    "SimilarityScores",
    "SourceRecord",
]
