"""Run-wide statistics aggregated across every job of one manager."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from servicefinder.domain.model import JobResult


@dataclass(frozen=True, slots=True, kw_only=True)
class PipelineStats:
    jobs_completed: int
    jobs_failed: int
    jobs_pending: int
    jobs_running: int
    services_processed: int
    services_stored: int
    duplicates_found: int
    duplicates_merged: int
    records_dropped: int
    average_processing_time: float
    adapters: tuple[str, ...]


class RunStatistics:
    """Single owner of the mutable counters.

    ``record_terminal`` is the only write path and is called exactly once per
    job, from the step that moves it to a terminal state.
    The average processing time covers completed jobs only.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs_completed = 0
        self._jobs_failed = 0
        self._services_processed = 0
        self._services_stored = 0
        self._duplicates_found = 0
        self._duplicates_merged = 0
        self._records_dropped = 0
        self._total_processing_time = 0.0
        self._timed_jobs = 0

    def record_terminal(self, *, succeeded: bool, result: JobResult | None) -> None:
        with self._lock:
            if succeeded:
                self._jobs_completed += 1
            else:
                self._jobs_failed += 1
            if result is None:
                return
            self._services_processed += result.services_processed
            self._services_stored += result.services_stored
            self._duplicates_found += result.duplicates_found
            self._duplicates_merged += result.duplicates_merged
            self._records_dropped += result.records_dropped
            if succeeded:
                self._total_processing_time += result.processing_time
                self._timed_jobs += 1

    def snapshot(
        self, *, adapters: tuple[str, ...], pending: int, running: int
    ) -> PipelineStats:
        with self._lock:
            average = self._total_processing_time / self._timed_jobs if self._timed_jobs else 0.0
            return PipelineStats(
                jobs_completed=self._jobs_completed,
                jobs_failed=self._jobs_failed,
                jobs_pending=pending,
                jobs_running=running,
                services_processed=self._services_processed,
                services_stored=self._services_stored,
                duplicates_found=self._duplicates_found,
                duplicates_merged=self._duplicates_merged,
                records_dropped=self._records_dropped,
                average_processing_time=average,
                adapters=adapters,
            )
