"""Ports for handing deduplicated batches to storage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from servicefinder.domain.model import NormalizedService


class StoreError(RuntimeError):
    """Raised by a sink for a fatal store failure.

    ``stored`` is the number of records acknowledged before the failure, for
    sinks that support partial batch acknowledgement (0 otherwise).
    """

    def __init__(self, message: str, *, stored: int = 0) -> None:
        super().__init__(message)
        self.stored = stored


@dataclass(slots=True)
class StoreResult:
    stored: int
    errors: list[str] = field(default_factory=list[str])


@runtime_checkable
class ResultSink(Protocol):
    """Persistence target for a job's final batch."""

    async def store(self, batch: Sequence[NormalizedService]) -> StoreResult: ...


@runtime_checkable
class CorpusSource(Protocol):
    """Optional sink capability: expose previously stored services for cross-run dedup."""

    async def load_corpus(self) -> Sequence[NormalizedService]: ...


@runtime_checkable
class ClosableSink(Protocol):
    async def aclose(self) -> None: ...


__all__ = ["ClosableSink", "CorpusSource", "ResultSink", "StoreError", "StoreResult"]
