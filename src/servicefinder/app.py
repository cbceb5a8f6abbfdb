"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from servicefinder.adapters.acnc import AcncAdapter
from servicefinder.adapters.qld_data import QldDataAdapter
from servicefinder.adapters.sqlalchemy import SqlAlchemyResultSink
from servicefinder.config import get_matching_config, get_pipeline_config, get_quality_config
from servicefinder.domain.ingest_pipeline import (
    DeduplicationEngine,
    PipelineManager,
    QualityEngine,
)
from servicefinder.domain.model import JobSpec

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from servicefinder.config import PipelineConfig
    from servicefinder.domain.ingest_pipeline import AdapterStatus, PipelineStats
    from servicefinder.domain.model import JobSnapshot
    from servicefinder.domain.ports import ResultSink, SourceAdapter

AdapterFactory = Callable[[], "SourceAdapter"]

ADAPTER_FACTORIES: dict[str, AdapterFactory] = {
    "acnc": AcncAdapter,
    "qld-data": QldDataAdapter,
}


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExtractionRun:
    jobs: list[JobSnapshot]
    stats: PipelineStats


def build_adapters(sources: Sequence[str] | None = None) -> dict[str, SourceAdapter]:
    """Instantiate the named adapters (all known adapters when ``sources`` is None)."""

    names = list(sources) if sources is not None else list(ADAPTER_FACTORIES)
    unknown = [name for name in names if name not in ADAPTER_FACTORIES]
    if unknown:
        known = ", ".join(ADAPTER_FACTORIES)
        raise ValueError(f"Unknown source(s): {', '.join(unknown)} (known: {known})")
    return {name: ADAPTER_FACTORIES[name]() for name in dict.fromkeys(names)}


def build_pipeline_manager(
    *,
    adapters: Mapping[str, SourceAdapter] | None = None,
    sink: ResultSink | None = None,
    config: PipelineConfig | None = None,
) -> PipelineManager:
    """Wire a pipeline manager with the configured engines."""

    return PipelineManager(
        adapters if adapters is not None else build_adapters(),
        sink=sink,
        config=config or get_pipeline_config(),
        quality_engine=QualityEngine(get_quality_config()),
        deduplication_engine=DeduplicationEngine(get_matching_config()),
    )


def run_extraction(
    sources: Sequence[str],
    *,
    limit: int | None = None,
    youth_only: bool = False,
    datasets: Sequence[str] | None = None,
    min_quality_score: float | None = None,
    enable_quality_assessment: bool = True,
    enable_deduplication: bool = True,
    store_results: bool = False,
    dedupe_against_stored: bool = False,
    adapters: Mapping[str, SourceAdapter] | None = None,
    sink: ResultSink | None = None,
    config: PipelineConfig | None = None,
) -> ExtractionRun:
    """Run one job per source to completion and return their final snapshots."""

    specs = [
        JobSpec(
            source=source,
            limit=limit,
            filters={"youth_only": True} if youth_only else {},
            datasets=tuple(datasets) if datasets else None,
            min_quality_score=min_quality_score,
            enable_quality_assessment=enable_quality_assessment,
            enable_deduplication=enable_deduplication,
            store_results=store_results,
            dedupe_against_stored=dedupe_against_stored,
        )
        for source in sources
    ]
    if sink is None and (store_results or dedupe_against_stored):
        sink = SqlAlchemyResultSink.from_config()
    effective_adapters = adapters if adapters is not None else build_adapters(sources)

    log.info(
        "Starting extraction: sources=%s, limit=%s, youth_only=%s, store=%s",
        ",".join(sources),
        limit,
        youth_only,
        store_results,
    )
    run = asyncio.run(_run_jobs(specs, adapters=effective_adapters, sink=sink, config=config))
    log.info(
        f"Finished extraction: completed={run.stats.jobs_completed}, "
        f"failed={run.stats.jobs_failed}, processed={run.stats.services_processed}, "
        f"stored={run.stats.services_stored}, duplicates={run.stats.duplicates_found}"
    )
    return run


async def _run_jobs(
    specs: Sequence[JobSpec],
    *,
    adapters: Mapping[str, SourceAdapter],
    sink: ResultSink | None,
    config: PipelineConfig | None,
) -> ExtractionRun:
    manager = build_pipeline_manager(adapters=adapters, sink=sink, config=config)
    try:
        job_ids = [manager.create_job(spec) for spec in specs]
        await manager.wait_until_idle()
        jobs = [snapshot for job_id in job_ids if (snapshot := manager.get_job(job_id))]
        return ExtractionRun(jobs=jobs, stats=manager.get_stats())
    finally:
        await manager.cleanup()


def check_sources(
    *,
    adapters: Mapping[str, SourceAdapter] | None = None,
    sample_size: int = 5,
) -> dict[str, AdapterStatus]:
    """Run a connectivity check against every adapter."""

    log.info("Checking sources with sample size %d", sample_size)
    return asyncio.run(_check_sources(adapters, sample_size))


async def _check_sources(
    adapters: Mapping[str, SourceAdapter] | None, sample_size: int
) -> dict[str, AdapterStatus]:
    manager = build_pipeline_manager(adapters=adapters)
    try:
        return await manager.run_tests(sample_size=sample_size)
    finally:
        await manager.cleanup()
