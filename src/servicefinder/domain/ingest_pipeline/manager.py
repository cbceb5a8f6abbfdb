"""Orchestration root: turns job specs into executed work and lifecycle events.

A fixed pool of worker tasks drains a FIFO queue, so at most
``max_concurrent_jobs`` jobs are ``running`` at any time. Each job runs its
steps strictly in sequence:

1. extract (bounded by a timeout, retried on timeouts and transient errors)
2. normalize (unnamed records are dropped and counted)
3. quality assessment, dropping records below the minimum score
4. deduplication, merging exact matches and surfacing probable ones
5. store the surviving batch (bounded by a timeout, retried on timeouts)

Adapters and engines only return data or raise; every lifecycle transition,
event and statistics update happens here. A failing job never affects other
jobs.

All public methods must be called from the event loop the manager runs on.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from servicefinder.config.pipeline import PipelineConfig
from servicefinder.domain.ingest_pipeline.deduplication import DeduplicationEngine
from servicefinder.domain.ingest_pipeline.events import EventChannel, EventKind, PipelineEvent
from servicefinder.domain.ingest_pipeline.jobs import Job, cancellation
from servicefinder.domain.ingest_pipeline.normalization import normalize_records
from servicefinder.domain.ingest_pipeline.quality import QualityEngine
from servicefinder.domain.ingest_pipeline.stats import RunStatistics
from servicefinder.domain.model import JobFailure, JobResult, JobSpec, JobState
from servicefinder.domain.ports import (
    ClosableAdapter,
    ClosableSink,
    CorpusSource,
    ExtractionOptions,
    StoreError,
    TransientExtractionError,
)
from servicefinder.domain.ports.fetching import truncate_records

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from servicefinder.domain.ingest_pipeline.events import EventHandler
    from servicefinder.domain.ingest_pipeline.stats import PipelineStats
    from servicefinder.domain.model import JobSnapshot, MatchCandidatePair, NormalizedService
    from servicefinder.domain.ports import ExtractionResult, ResultSink, SourceAdapter

log = getLogger(__name__)

DEFAULT_TEST_SAMPLE_SIZE = 5


class UnknownSourceError(LookupError):
    """Raised by ``create_job`` when no adapter is registered under the source name."""

    def __init__(self, source: str, available: Sequence[str]) -> None:
        listed = ", ".join(available) or "none"
        super().__init__(f"Unknown source {source!r} (registered: {listed})")
        self.source = source


class PipelineClosedError(RuntimeError):
    """Raised when jobs are created after ``cleanup``."""


class AdapterRegistryFrozenError(RuntimeError):
    """Raised when adapters are registered after the first job was created."""


class JobExecutionError(RuntimeError):
    """Carries the partial result of a job that failed after doing some work."""

    def __init__(self, cause: BaseException, result: JobResult) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.result = result


@dataclass(frozen=True, slots=True, kw_only=True)
class AdapterStatus:
    """Outcome of one adapter's diagnostic extraction."""

    source: str
    status: str
    estimated_records: int | None = None
    services_extracted: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class PipelineManager:
    def __init__(
        self,
        adapters: Mapping[str, SourceAdapter] | None = None,
        *,
        sink: ResultSink | None = None,
        config: PipelineConfig | None = None,
        quality_engine: QualityEngine | None = None,
        deduplication_engine: DeduplicationEngine | None = None,
    ) -> None:
        self._config = config or PipelineConfig()
        self._adapters: dict[str, SourceAdapter] = dict(adapters or {})
        self._sink = sink
        self._quality = quality_engine or QualityEngine()
        self._deduplication = deduplication_engine or DeduplicationEngine()
        self._events = EventChannel()
        self._stats = RunStatistics()
        self._jobs: dict[str, Job] = {}
        self._queue: asyncio.Queue[Job] = asyncio.Queue()
        self._workers: list[asyncio.Task[None]] = []
        self._idle = asyncio.Event()
        self._idle.set()
        self._outstanding = 0
        self._registry_frozen = False
        self._closed = False

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def adapters(self) -> tuple[str, ...]:
        return tuple(self._adapters)

    # --- registry -------------------------------------------------------------

    def register_adapter(self, name: str, adapter: SourceAdapter) -> None:
        if self._registry_frozen:
            raise AdapterRegistryFrozenError(
                f"Cannot register {name!r}: adapters are read-only once jobs exist"
            )
        if not name:
            raise ValueError("Adapter name must not be empty")
        self._adapters[name] = adapter
        log.info("Registered adapter %s", name)

    # --- events ---------------------------------------------------------------

    def subscribe(
        self,
        handler: EventHandler,
        kinds: frozenset[EventKind] | set[EventKind] | None = None,
    ) -> Callable[[], None]:
        """Subscribe to lifecycle events; returns an unsubscribe callable.

        Only events published after subscribing are delivered.
        """

        return self._events.subscribe(handler, kinds)

    def _publish(self, kind: EventKind, job: Job | None = None) -> None:
        self._events.publish(
            PipelineEvent(kind=kind, job=job.snapshot() if job is not None else None)
        )

    # --- jobs -----------------------------------------------------------------

    def create_job(self, spec: JobSpec | Mapping[str, Any]) -> str:
        """Validate and enqueue a job; returns its id without waiting for it.

        Must be called while the event loop is running (workers start lazily).
        """

        if self._closed:
            raise PipelineClosedError("Pipeline has been cleaned up; no new jobs accepted")
        job_spec = spec if isinstance(spec, JobSpec) else JobSpec.from_options(spec)
        if job_spec.source not in self._adapters:
            raise UnknownSourceError(job_spec.source, tuple(self._adapters))
        if job_spec.store_results and self._sink is None:
            raise ValueError("store_results requires a result sink")

        self._ensure_workers()
        self._registry_frozen = True
        job = Job(id=f"job_{uuid4().hex[:12]}", spec=job_spec)
        self._jobs[job.id] = job
        self._outstanding += 1
        self._idle.clear()
        log.info("Created job %s for source %s", job.id, job.source)
        self._publish(EventKind.JOB_CREATED, job)
        self._queue.put_nowait(job)
        return job.id

    def get_job(self, job_id: str) -> JobSnapshot | None:
        job = self._jobs.get(job_id)
        return job.snapshot() if job is not None else None

    def get_all_jobs(self) -> list[JobSnapshot]:
        """Snapshots of every job in creation order."""

        return [job.snapshot() for job in self._jobs.values()]

    def get_stats(self) -> PipelineStats:
        states = [job.state for job in self._jobs.values()]
        return self._stats.snapshot(
            adapters=self.adapters,
            pending=states.count(JobState.PENDING),
            running=states.count(JobState.RUNNING),
        )

    async def wait_until_idle(self) -> None:
        """Wait until every job created so far has reached a terminal state."""

        await self._idle.wait()

    def _ensure_workers(self) -> None:
        if self._workers:
            return
        loop = asyncio.get_running_loop()
        self._workers = [
            loop.create_task(self._worker(), name=f"pipeline-worker-{index}")
            for index in range(self._config.max_concurrent_jobs)
        ]

    async def _worker(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job.state is JobState.PENDING:
                    await self._run_job(job)
            finally:
                self._queue.task_done()

    async def _run_job(self, job: Job) -> None:
        job.start()
        log.info("Started job %s (%s)", job.id, job.source)
        self._publish(EventKind.JOB_STARTED, job)
        started = time.perf_counter()
        try:
            result = await self._execute(job, started)
        except asyncio.CancelledError:
            self._fail(job, cancellation("Pipeline shut down while the job was running"))
            raise
        except JobExecutionError as exc:
            log.error("Job %s failed: %s", job.id, exc.cause, exc_info=exc.cause)
            self._fail(job, _failure_from(exc.cause), result=exc.result)
        except Exception as exc:
            log.exception("Job %s failed", job.id)
            self._fail(job, _failure_from(exc))
        else:
            self._complete(job, result)

    def _complete(self, job: Job, result: JobResult) -> None:
        job.complete(result)
        log.info(
            "Completed job %s: %d processed, %d stored, %d duplicates in %.2fs",
            job.id,
            result.services_processed,
            result.services_stored,
            result.duplicates_found,
            result.processing_time,
        )
        self._settle(job, succeeded=True)

    def _fail(self, job: Job, failure: JobFailure, *, result: JobResult | None = None) -> None:
        job.fail(failure, result=result)
        self._settle(job, succeeded=False)

    def _settle(self, job: Job, *, succeeded: bool) -> None:
        self._stats.record_terminal(succeeded=succeeded, result=job.result)
        self._publish(EventKind.JOB_COMPLETED if succeeded else EventKind.JOB_FAILED, job)

        self._outstanding -= 1
        if self._outstanding == 0:
            self._idle.set()
            log.info("Queue drained")
            self._publish(EventKind.QUEUE_COMPLETED)

    # --- per-job execution ----------------------------------------------------

    async def _execute(self, job: Job, started: float) -> JobResult:
        spec = job.spec
        adapter = self._adapters[spec.source]
        options = ExtractionOptions(limit=spec.limit, filters=spec.filters, datasets=spec.datasets)
        extraction: ExtractionResult = await self._attempt(
            f"extract {spec.source}",
            job,
            lambda: adapter.extract(options),
            timeout=self._config.extract_timeout_seconds,
            retry_on=(TimeoutError, TransientExtractionError),
        )
        records = truncate_records(list(extraction.records), spec.limit)
        for error in extraction.errors:
            log.warning("Job %s extraction error (%s): %s", job.id, error.kind.value, error.message)

        normalized = normalize_records(records)
        services = normalized.services

        quality_summary = None
        dropped_low_quality = 0
        if spec.enable_quality_assessment:
            assessment = self._quality.assess_batch(services)
            quality_summary = assessment.summary
            scored = [
                replace(service, quality=report)
                for service, report in zip(services, assessment.reports, strict=True)
            ]
            threshold = (
                spec.min_quality_score
                if spec.min_quality_score is not None
                else self._config.min_quality_score
            )
            services = [s for s in scored if (s.quality_score or 0.0) >= threshold]
            dropped_low_quality = len(scored) - len(services)
            if dropped_low_quality:
                log.info(
                    "Job %s dropped %d records below quality %.2f",
                    job.id,
                    dropped_low_quality,
                    threshold,
                )

        duplicates_found = 0
        duplicates_merged = 0
        probable: tuple[MatchCandidatePair, ...] = ()
        if spec.enable_deduplication and services:
            corpus = await self._load_corpus(job) if spec.dedupe_against_stored else ()
            resolution = self._deduplication.resolve(
                services,
                corpus,
                reassess=self._reassess if spec.enable_quality_assessment else None,
            )
            services = resolution.services
            duplicates_found = resolution.duplicates_found
            duplicates_merged = resolution.duplicates_merged
            probable = tuple(resolution.probable_pairs)

        result = JobResult(
            services_processed=len(records),
            duplicates_found=duplicates_found,
            duplicates_merged=duplicates_merged,
            records_dropped_invalid=normalized.dropped_invalid,
            records_dropped_low_quality=dropped_low_quality,
            quality=quality_summary,
            services=tuple(services),
            probable_duplicates=probable,
            extraction_errors=tuple(extraction.errors),
        )

        if spec.store_results and services and self._sink is not None:
            result = await self._store(job, self._sink, services, result, started)

        return replace(result, processing_time=time.perf_counter() - started)

    def _reassess(self, service: NormalizedService) -> NormalizedService:
        return replace(service, quality=self._quality.assess(service))

    async def _load_corpus(self, job: Job) -> Sequence[NormalizedService]:
        sink = self._sink
        if not isinstance(sink, CorpusSource):
            log.warning("Job %s: sink cannot load stored services, batch only", job.id)
            return ()
        try:
            async with asyncio.timeout(self._config.store_timeout_seconds):
                corpus = await sink.load_corpus()
        except (TimeoutError, StoreError) as exc:
            log.warning("Job %s: could not load stored services (%s), batch only", job.id, exc)
            return ()
        log.debug("Job %s: loaded %d stored services for deduplication", job.id, len(corpus))
        return corpus

    async def _store(
        self,
        job: Job,
        sink: ResultSink,
        services: Sequence[NormalizedService],
        result: JobResult,
        started: float,
    ) -> JobResult:
        try:
            outcome = await self._attempt(
                "store",
                job,
                lambda: sink.store(services),
                timeout=self._config.store_timeout_seconds,
                retry_on=(TimeoutError,),
            )
        except StoreError as exc:
            partial = replace(
                result,
                services_stored=exc.stored,
                processing_time=time.perf_counter() - started,
            )
            raise JobExecutionError(exc, partial) from exc
        except Exception as exc:
            partial = replace(result, processing_time=time.perf_counter() - started)
            raise JobExecutionError(exc, partial) from exc
        for message in outcome.errors:
            log.warning("Job %s store error: %s", job.id, message)
        return replace(result, services_stored=outcome.stored, store_errors=tuple(outcome.errors))

    async def _attempt[T](
        self,
        step: str,
        job: Job,
        call: Callable[[], Awaitable[T]],
        *,
        timeout: float,
        retry_on: tuple[type[BaseException], ...],
    ) -> T:
        attempt = 1
        while True:
            try:
                async with asyncio.timeout(timeout):
                    return await call()
            except retry_on as exc:
                if attempt >= self._config.max_attempts:
                    if isinstance(exc, TimeoutError):
                        raise TimeoutError(
                            f"{step} timed out after {timeout:g}s ({attempt} attempts)"
                        ) from exc
                    raise
                delay = self._config.backoff_for(attempt)
                log.warning(
                    "Job %s: %s failed on attempt %d/%d (%s); retrying in %.2fs",
                    job.id,
                    step,
                    attempt,
                    self._config.max_attempts,
                    type(exc).__name__,
                    delay,
                )
                await asyncio.sleep(delay)
                attempt += 1

    # --- diagnostics ----------------------------------------------------------

    async def run_tests(
        self, *, sample_size: int = DEFAULT_TEST_SAMPLE_SIZE
    ) -> dict[str, AdapterStatus]:
        """Run a small extraction against every adapter.

        Bypasses the job pipeline entirely: no jobs, events or statistics.
        """

        names = tuple(self._adapters)
        statuses = await asyncio.gather(
            *(self._test_adapter(name, sample_size) for name in names)
        )
        return dict(zip(names, statuses, strict=True))

    async def _test_adapter(self, name: str, sample_size: int) -> AdapterStatus:
        adapter = self._adapters[name]
        options = ExtractionOptions(limit=sample_size)
        try:
            async with asyncio.timeout(self._config.test_timeout_seconds):
                extraction = await adapter.extract(options)
            records = truncate_records(list(extraction.records), sample_size)
        except Exception as exc:  # diagnostics report every failure as a status
            log.warning("Adapter %s failed its connectivity test: %r", name, exc)
            return AdapterStatus(
                source=name, status="error", error=str(exc) or type(exc).__name__
            )
        return AdapterStatus(
            source=name,
            status="success",
            estimated_records=extraction.stats.estimated_total,
            services_extracted=len(records),
        )

    # --- shutdown -------------------------------------------------------------

    async def cleanup(self) -> None:
        """Stop accepting jobs, settle outstanding ones and close adapters and sink.

        Queued jobs that never started are marked failed with a cancellation
        reason. Running jobs get ``drain_timeout_seconds`` to finish; after
        that they are cancelled and marked failed. Calling this again is a no-op.
        """

        if self._closed:
            return
        self._closed = True

        for job in list(self._jobs.values()):
            if job.state is JobState.PENDING:
                self._fail(job, cancellation("Pipeline shut down before the job started"))

        try:
            async with asyncio.timeout(self._config.drain_timeout_seconds):
                await self._idle.wait()
        except TimeoutError:
            log.warning(
                "Running jobs did not finish within %.1fs; cancelling",
                self._config.drain_timeout_seconds,
            )

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        for name, adapter in self._adapters.items():
            if isinstance(adapter, ClosableAdapter):
                try:
                    await adapter.aclose()
                except Exception:
                    log.exception("Failed to close adapter %s", name)
        if isinstance(self._sink, ClosableSink):
            try:
                await self._sink.aclose()
            except Exception:
                log.exception("Failed to close result sink")
        log.info("Pipeline cleaned up")


def _failure_from(error: BaseException) -> JobFailure:
    return JobFailure(error_type=type(error).__name__, message=str(error) or type(error).__name__)
