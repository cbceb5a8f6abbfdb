"""Duplicate detection and exact-match resolution across a batch.

Responsibilities of this stage:
- find candidate duplicate pairs within a batch (and optionally against a
  previously stored corpus) using the scoring in ``matching``
- bucket records by blocking key once a batch is large enough, producing the
  same pairs as the full pairwise comparison
- merge ``exact`` clusters and surface ``probable`` pairs without dropping
  either record

Resolution repeats until no exact pair remains, so running it again on its own
output never merges anything.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from itertools import combinations
from logging import getLogger
from typing import TYPE_CHECKING

from servicefinder.config.matching import MatchingConfig
from servicefinder.domain.ingest_pipeline.matching import compare_features, extract_features
from servicefinder.domain.ingest_pipeline.merge import FieldConflict, merge_services
from servicefinder.domain.model import (
    DeduplicationStats,
    DuplicateReport,
    MatchCandidatePair,
    MatchClassification,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from servicefinder.domain.ingest_pipeline.matching import MatchFeatures
    from servicefinder.domain.model import NormalizedService

log = getLogger(__name__)

type Reassess = Callable[[NormalizedService], NormalizedService]


@dataclass(slots=True)
class ResolutionOutcome:
    """Result of resolving one batch.

    ``services`` holds the surviving batch records (including any stored record
    a batch record was merged into). ``duplicates_found`` counts every exact
    pair merged plus the probable pairs that remain.
    """

    services: list[NormalizedService]
    duplicates_found: int = 0
    duplicates_merged: int = 0
    probable_pairs: list[MatchCandidatePair] = field(default_factory=list[MatchCandidatePair])
    conflicts: list[FieldConflict] = field(default_factory=list[FieldConflict])
    comparisons: int = 0


class _DisjointSet:
    def __init__(self) -> None:
        self._parent: dict[str, str] = {}

    def find(self, item: str) -> str:
        parent = self._parent.setdefault(item, item)
        if parent != item:
            parent = self.find(parent)
            self._parent[item] = parent
        return parent

    def union(self, left: str, right: str) -> None:
        left_root, right_root = self.find(left), self.find(right)
        if left_root == right_root:
            return
        # smaller id becomes the root so clusters are stable across runs
        if right_root < left_root:
            left_root, right_root = right_root, left_root
        self._parent[right_root] = left_root


@dataclass(slots=True)
class DeduplicationEngine:
    config: MatchingConfig = field(default_factory=MatchingConfig)

    def find_duplicates(
        self,
        records: Sequence[NormalizedService],
        corpus: Sequence[NormalizedService] = (),
    ) -> DuplicateReport:
        """Classify every candidate pair; pairs classified ``none`` are omitted.

        Corpus records are only compared against batch records, never against
        each other. A corpus record whose id also appears in the batch is
        superseded by the batch copy and skipped.
        """

        batch_ids = {record.id for record in records}
        active_corpus = [stored for stored in corpus if stored.id not in batch_ids]
        features = [extract_features(record, self.config) for record in records]
        corpus_features = [extract_features(stored, self.config) for stored in active_corpus]

        candidates = self._candidate_pairs(features, corpus_features)
        everyone = [*features, *corpus_features]
        pairs: list[MatchCandidatePair] = []
        for left_index, right_index in candidates:
            left, right = everyone[left_index], everyone[right_index]
            if left.service_id == right.service_id:
                continue
            pair = compare_features(left, right, self.config)
            if pair.classification is not MatchClassification.NONE:
                pairs.append(pair)

        stats = DeduplicationStats(
            total_checked=len(records),
            duplicates_found=len(pairs),
            comparisons=len(candidates),
        )
        log.debug(
            "Checked %d records (%d comparisons), %d duplicate pairs",
            stats.total_checked,
            stats.comparisons,
            stats.duplicates_found,
        )
        return DuplicateReport(duplicate_pairs=tuple(pairs), stats=stats)

    def resolve(
        self,
        records: Sequence[NormalizedService],
        corpus: Sequence[NormalizedService] = (),
        *,
        reassess: Reassess | None = None,
    ) -> ResolutionOutcome:
        """Merge exact duplicates until none remain and report probable pairs.

        ``reassess`` is applied to every merged record (typically to attach a
        fresh quality report, which also feeds merge precedence on the next
        round).
        """

        current = list(records)
        remaining_corpus = {stored.id: stored for stored in corpus}
        outcome = ResolutionOutcome(services=current)
        while True:
            report = self.find_duplicates(current, list(remaining_corpus.values()))
            outcome.comparisons += report.stats.comparisons
            exact_pairs = report.exact_pairs
            if not exact_pairs:
                outcome.probable_pairs = list(report.probable_pairs)
                outcome.duplicates_found += len(outcome.probable_pairs)
                break
            outcome.duplicates_found += len(exact_pairs)
            current = self._merge_round(current, remaining_corpus, exact_pairs, outcome, reassess)

        outcome.services = current
        outcome.duplicates_merged = len(records) - len(current)
        if outcome.duplicates_found:
            log.info(
                "Resolved %d duplicate pairs: %d records merged, %d probable pairs surfaced",
                outcome.duplicates_found,
                outcome.duplicates_merged,
                len(outcome.probable_pairs),
            )
        return outcome

    def _merge_round(
        self,
        current: list[NormalizedService],
        remaining_corpus: dict[str, NormalizedService],
        exact_pairs: Iterable[MatchCandidatePair],
        outcome: ResolutionOutcome,
        reassess: Reassess | None,
    ) -> list[NormalizedService]:
        clusters = _DisjointSet()
        for pair in exact_pairs:
            clusters.union(pair.left_id, pair.right_id)

        by_id = {service.id: service for service in current}
        members_by_root: dict[str, list[NormalizedService]] = defaultdict(list)
        for service_id in dict.fromkeys([*by_id, *remaining_corpus]):
            root = clusters.find(service_id)
            member = by_id.get(service_id) or remaining_corpus[service_id]
            members_by_root[root].append(member)

        merged_by_root: dict[str, NormalizedService] = {}
        for root, members in members_by_root.items():
            if len(members) < 2:
                continue
            stored_ids = sorted(member.id for member in members if member.id in remaining_corpus)
            merge = merge_services(members, keep_id=stored_ids[0] if stored_ids else None)
            merged = reassess(merge.service) if reassess is not None else merge.service
            outcome.conflicts.extend(merge.conflicts)
            merged_by_root[root] = merged
            for stored_id in stored_ids:
                del remaining_corpus[stored_id]

        # keep batch order: a merged record takes the slot of its first member
        result: list[NormalizedService] = []
        emitted: set[str] = set()
        for service in current:
            root = clusters.find(service.id)
            merged = merged_by_root.get(root)
            if merged is None:
                result.append(service)
            elif root not in emitted:
                emitted.add(root)
                result.append(merged)
        return result

    def _candidate_pairs(
        self,
        features: Sequence[MatchFeatures],
        corpus_features: Sequence[MatchFeatures],
    ) -> list[tuple[int, int]]:
        batch_size = len(features)
        total = batch_size + len(corpus_features)
        if total <= self.config.blocking_min_records:
            return [(i, j) for i in range(batch_size) for j in range(i + 1, total)]

        buckets: dict[str, list[int]] = defaultdict(list)
        everyone = [*features, *corpus_features]
        for index, item in enumerate(everyone):
            for key in item.blocking_keys:
                buckets[key].append(index)

        candidates: set[tuple[int, int]] = set()
        for indices in buckets.values():
            for left, right in combinations(indices, 2):
                if left < batch_size:
                    candidates.add((left, right))
        for index, item in enumerate(everyone):
            if not item.unselective:
                continue
            for other in range(total):
                left, right = min(index, other), max(index, other)
                if left != right and left < batch_size:
                    candidates.add((left, right))
        # sorted order matches the unblocked enumeration exactly
        return sorted(candidates)
