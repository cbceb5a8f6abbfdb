"""Quality report value objects."""

from __future__ import annotations

from dataclasses import dataclass, field

from servicefinder.domain.model.enums import IssueKind, QualityBucket


@dataclass(frozen=True, slots=True)
class QualityIssue:
    kind: IssueKind
    field_name: str


@dataclass(frozen=True, slots=True, kw_only=True)
class QualityReport:
    """Immutable score for one record in one pipeline run."""

    service_id: str
    score: float
    completeness: float
    contactability: float
    specificity: float
    issues: tuple[QualityIssue, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Quality score out of range: {self.score}")


@dataclass(frozen=True, slots=True)
class IssueCount:
    kind: IssueKind
    count: int


@dataclass(frozen=True, slots=True, kw_only=True)
class QualitySummary:
    total_services: int
    average_score: float
    distribution: dict[QualityBucket, int] = field(
        default_factory=lambda: dict.fromkeys(QualityBucket, 0)
    )
    common_issues: tuple[IssueCount, ...] = ()
