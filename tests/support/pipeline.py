"""In-memory adapters and sinks for exercising the pipeline manager."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence  # noqa: TC003
from dataclasses import dataclass, field

from servicefinder.domain.model import (
    ExtractionError,
    ExtractionStats,
    NormalizedService,
    SourceRecord,
)
from servicefinder.domain.ports import (
    ExtractionOptions,
    ExtractionResult,
    FatalExtractionError,
    StoreError,
    StoreResult,
    TransientExtractionError,
)


@dataclass(slots=True)
class FakeAdapter:
    """Returns a fixed batch, honouring ``limit``; records every call."""

    records: list[SourceRecord] = field(default_factory=list[SourceRecord])
    errors: list[ExtractionError] = field(default_factory=list[ExtractionError])
    estimated_total: int | None = None
    delay: float = 0.0
    calls: list[ExtractionOptions] = field(default_factory=list[ExtractionOptions])
    closed: bool = False

    async def extract(self, options: ExtractionOptions) -> ExtractionResult:
        self.calls.append(options)
        if self.delay:
            await asyncio.sleep(self.delay)
        records = self.records if options.limit is None else self.records[: options.limit]
        return ExtractionResult(
            records=list(records),
            stats=ExtractionStats(
                estimated_total=(
                    self.estimated_total
                    if self.estimated_total is not None
                    else len(self.records)
                ),
                fetched=len(records),
            ),
            errors=list(self.errors),
        )

    async def aclose(self) -> None:
        self.closed = True


@dataclass(slots=True)
class FailingAdapter:
    """Raises a fatal error on every call."""

    message: str = "source unreachable"
    calls: int = 0

    async def extract(self, options: ExtractionOptions) -> ExtractionResult:
        self.calls += 1
        raise FatalExtractionError(self.message)


@dataclass(slots=True)
class FlakyAdapter:
    """Fails transiently (or hangs) for the first ``failures`` calls, then succeeds."""

    records: list[SourceRecord]
    failures: int = 1
    hang: bool = False
    calls: int = 0

    async def extract(self, options: ExtractionOptions) -> ExtractionResult:
        self.calls += 1
        if self.calls <= self.failures:
            if self.hang:
                await asyncio.sleep(3600)
            raise TransientExtractionError("temporarily unavailable")
        return ExtractionResult(
            records=list(self.records),
            stats=ExtractionStats(estimated_total=len(self.records), fetched=len(self.records)),
        )


@dataclass(slots=True)
class ConcurrencyProbeAdapter:
    """Tracks how many extractions overlap while each one sleeps."""

    records: list[SourceRecord]
    delay: float = 0.02
    active: int = 0
    peak: int = 0

    async def extract(self, options: ExtractionOptions) -> ExtractionResult:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return ExtractionResult(
            records=list(self.records),
            stats=ExtractionStats(estimated_total=len(self.records), fetched=len(self.records)),
        )


@dataclass(slots=True)
class GatedAdapter:
    """Blocks every extraction until ``release`` is set."""

    release: asyncio.Event
    started: int = 0

    async def extract(self, options: ExtractionOptions) -> ExtractionResult:
        self.started += 1
        await self.release.wait()
        return ExtractionResult(records=[], stats=ExtractionStats(estimated_total=0, fetched=0))


@dataclass(slots=True)
class RecordingSink:
    """Keeps every stored batch; optionally fails after acknowledging ``fail_after``."""

    fail_after: int | None = None
    corpus: list[NormalizedService] = field(default_factory=list[NormalizedService])
    batches: list[list[NormalizedService]] = field(default_factory=list[list[NormalizedService]])
    closed: bool = False

    async def store(self, batch: Sequence[NormalizedService]) -> StoreResult:
        items = list(batch)
        if self.fail_after is not None and len(items) > self.fail_after:
            self.batches.append(items[: self.fail_after])
            raise StoreError("database went away", stored=self.fail_after)
        self.batches.append(items)
        return StoreResult(stored=len(items))

    async def load_corpus(self) -> Sequence[NormalizedService]:
        return list(self.corpus)

    async def aclose(self) -> None:
        self.closed = True

    @property
    def stored(self) -> list[NormalizedService]:
        return [service for batch in self.batches for service in batch]
