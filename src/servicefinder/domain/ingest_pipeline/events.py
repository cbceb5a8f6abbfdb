"""Per-manager notification channel for job lifecycle events.

Each manager owns one channel. Subscribers receive events published after they
subscribed; nothing is buffered or replayed. A subscriber that raises is logged
and skipped; it never affects the job that produced the event.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from servicefinder.domain.model import JobSnapshot

log = getLogger(__name__)


class EventKind(StrEnum):
    JOB_CREATED = "job_created"
    JOB_STARTED = "job_started"
    JOB_COMPLETED = "job_completed"
    JOB_FAILED = "job_failed"
    QUEUE_COMPLETED = "queue_completed"


@dataclass(frozen=True, slots=True)
class PipelineEvent:
    """One immutable lifecycle message; ``job`` is ``None`` for ``queue_completed``."""

    kind: EventKind
    job: JobSnapshot | None = None


type EventHandler = Callable[[PipelineEvent], None]


class EventChannel:
    def __init__(self) -> None:
        self._subscribers: list[tuple[EventHandler, frozenset[EventKind] | None]] = []

    def subscribe(
        self,
        handler: EventHandler,
        kinds: frozenset[EventKind] | set[EventKind] | None = None,
    ) -> Callable[[], None]:
        """Register ``handler`` (optionally for a subset of kinds).

        Returns a callable that removes the subscription.
        """

        entry = (handler, frozenset(kinds) if kinds is not None else None)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: PipelineEvent) -> None:
        for handler, kinds in list(self._subscribers):
            if kinds is not None and event.kind not in kinds:
                continue
            try:
                handler(event)
            except Exception:
                log.exception("Event subscriber failed handling %s", event.kind.value)

    def __len__(self) -> int:
        return len(self._subscribers)
