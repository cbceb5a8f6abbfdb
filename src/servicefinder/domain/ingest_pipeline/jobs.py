"""Mutable job record owned by the pipeline manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from servicefinder.domain.model import JobFailure, JobSnapshot, JobState

if TYPE_CHECKING:
    from servicefinder.domain.model import JobResult, JobSpec


_ALLOWED_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.PENDING: frozenset({JobState.RUNNING, JobState.FAILED}),
    JobState.RUNNING: frozenset({JobState.COMPLETED, JobState.FAILED}),
    JobState.COMPLETED: frozenset(),
    JobState.FAILED: frozenset(),
}


class InvalidJobTransitionError(RuntimeError):
    """Raised when a job is moved along an edge the lifecycle does not allow."""

    def __init__(self, job_id: str, current: JobState, requested: JobState) -> None:
        super().__init__(
            f"Job {job_id} cannot transition from {current.value} to {requested.value}"
        )
        self.job_id = job_id
        self.current = current
        self.requested = requested


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(slots=True)
class Job:
    """``pending -> running -> completed | failed``; terminal states are final.

    A pending job may only fail directly when it is cancelled before starting.
    """

    id: str
    spec: JobSpec
    state: JobState = JobState.PENDING
    created_at: datetime = field(default_factory=_utcnow)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    result: JobResult | None = None
    error: JobFailure | None = None

    @property
    def source(self) -> str:
        return self.spec.source

    def start(self) -> None:
        self._transition(JobState.RUNNING)
        self.started_at = _utcnow()

    def complete(self, result: JobResult) -> None:
        self._transition(JobState.COMPLETED)
        self.finished_at = _utcnow()
        self.result = result

    def fail(self, error: BaseException | JobFailure, *, result: JobResult | None = None) -> None:
        if self.state is JobState.PENDING and not _is_cancellation(error):
            raise InvalidJobTransitionError(self.id, self.state, JobState.FAILED)
        self._transition(JobState.FAILED)
        self.finished_at = _utcnow()
        self.result = result
        self.error = (
            error
            if isinstance(error, JobFailure)
            else JobFailure(error_type=type(error).__name__, message=str(error))
        )

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            id=self.id,
            source=self.source,
            spec=self.spec,
            state=self.state,
            created_at=self.created_at,
            started_at=self.started_at,
            finished_at=self.finished_at,
            result=self.result,
            error=self.error,
        )

    def _transition(self, target: JobState) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidJobTransitionError(self.id, self.state, target)
        self.state = target


CANCELLED_ERROR_TYPE = "Cancelled"


def cancellation(message: str) -> JobFailure:
    return JobFailure(error_type=CANCELLED_ERROR_TYPE, message=message)


def _is_cancellation(error: BaseException | JobFailure) -> bool:
    return isinstance(error, JobFailure) and error.error_type == CANCELLED_ERROR_TYPE
