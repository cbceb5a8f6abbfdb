"""Transient duplicate-detection results."""

from __future__ import annotations

from dataclasses import dataclass

from servicefinder.domain.model.enums import MatchClassification


@dataclass(frozen=True, slots=True)
class SimilarityScores:
    """Per-dimension similarity; ``None`` means neither side had comparable data."""

    name: float
    location: float | None
    contact: float | None


@dataclass(frozen=True, slots=True, kw_only=True)
class MatchCandidatePair:
    left_id: str
    right_id: str
    scores: SimilarityScores
    confidence: float
    classification: MatchClassification

    @property
    def ids(self) -> frozenset[str]:
        return frozenset((self.left_id, self.right_id))


@dataclass(frozen=True, slots=True)
class DeduplicationStats:
    total_checked: int
    duplicates_found: int
    comparisons: int = 0


@dataclass(frozen=True, slots=True)
class DuplicateReport:
    duplicate_pairs: tuple[MatchCandidatePair, ...]
    stats: DeduplicationStats

    @property
    def exact_pairs(self) -> tuple[MatchCandidatePair, ...]:
        return tuple(
            pair
            for pair in self.duplicate_pairs
            if pair.classification is MatchClassification.EXACT
        )

    @property
    def probable_pairs(self) -> tuple[MatchCandidatePair, ...]:
        return tuple(
            pair
            for pair in self.duplicate_pairs
            if pair.classification is MatchClassification.PROBABLE
        )
