from __future__ import annotations

import pytest

from servicefinder import main as main_module
from servicefinder.app import ExtractionRun
from servicefinder.domain.ingest_pipeline import AdapterStatus, PipelineStats
from servicefinder.domain.model import JobFailure, JobResult, JobSnapshot, JobSpec, JobState
from tests.support.services import EXTRACTED_AT


def _stats(*, completed: int = 1, failed: int = 0) -> PipelineStats:
    return PipelineStats(
        jobs_completed=completed,
        jobs_failed=failed,
        jobs_pending=0,
        jobs_running=0,
        services_processed=4,
        services_stored=0,
        duplicates_found=1,
        duplicates_merged=1,
        records_dropped=0,
        average_processing_time=0.2,
        adapters=("acnc",),
    )


def _completed_job() -> JobSnapshot:
    return JobSnapshot(
        id="job_1",
        source="acnc",
        spec=JobSpec(source="acnc"),
        state=JobState.COMPLETED,
        created_at=EXTRACTED_AT,
        result=JobResult(services_processed=4, duplicates_found=1),
        error=None,
    )


def _failed_job() -> JobSnapshot:
    return JobSnapshot(
        id="job_2",
        source="qld-data",
        spec=JobSpec(source="qld-data"),
        state=JobState.FAILED,
        created_at=EXTRACTED_AT,
        error=JobFailure(error_type="FatalExtractionError", message="portal down"),
    )


def test_main_cli_extract_defaults(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_run(sources: list[str], **kwargs: object) -> ExtractionRun:
        captured["sources"] = sources
        captured.update(kwargs)
        return ExtractionRun(jobs=[_completed_job()], stats=_stats())

    monkeypatch.setattr(main_module, "run_extraction", fake_run)

    main_module.main(["extract", "acnc"])

    assert captured == {
        "sources": ["acnc"],
        "limit": None,
        "youth_only": False,
        "datasets": None,
        "min_quality_score": None,
        "enable_quality_assessment": True,
        "enable_deduplication": True,
        "store_results": False,
        "dedupe_against_stored": False,
    }
    out = capsys.readouterr().out
    assert "acnc: processed=4" in out
    assert "Jobs completed=1 failed=0" in out


def test_main_cli_extract_with_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(sources: list[str], **kwargs: object) -> ExtractionRun:
        captured["sources"] = sources
        captured.update(kwargs)
        return ExtractionRun(jobs=[_completed_job()], stats=_stats())

    monkeypatch.setattr(main_module, "run_extraction", fake_run)

    main_module.main(
        [
            "--log-level",
            "WARNING",
            "extract",
            "acnc",
            "qld-data",
            "--limit",
            "25",
            "--dataset",
            "youth_justice_centres",
            "--dataset",
            "community_services",
            "--youth-only",
            "--min-quality",
            "0.6",
            "--no-dedup",
            "--store",
            "--dedupe-against-stored",
        ]
    )

    assert captured["sources"] == ["acnc", "qld-data"]
    assert captured["limit"] == 25
    assert captured["datasets"] == ["youth_justice_centres", "community_services"]
    assert captured["youth_only"] is True
    assert captured["min_quality_score"] == 0.6
    assert captured["enable_quality_assessment"] is True
    assert captured["enable_deduplication"] is False
    assert captured["store_results"] is True
    assert captured["dedupe_against_stored"] is True


@pytest.mark.parametrize(
    "argv",
    [
        ["extract", "acnc", "--limit", "-1"],
        ["extract", "acnc", "--min-quality", "1.5"],
        ["test-sources", "--sample-size", "0"],
    ],
)
def test_main_cli_invalid_values(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], argv: list[str]
) -> None:
    def fake_run(*_: object, **__: object) -> ExtractionRun:
        raise AssertionError("run_extraction should not be called")

    monkeypatch.setattr(main_module, "run_extraction", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(argv)

    assert excinfo.value.code == 2
    assert "Error:" in capsys.readouterr().err


def test_main_cli_rejects_unknown_sources() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["extract", "nowhere"])

    assert excinfo.value.code == 2


def test_main_cli_exits_non_zero_when_a_job_fails(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fake_run(*_: object, **__: object) -> ExtractionRun:
        return ExtractionRun(
            jobs=[_completed_job(), _failed_job()], stats=_stats(completed=1, failed=1)
        )

    monkeypatch.setattr(main_module, "run_extraction", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["extract", "acnc", "qld-data"])

    assert excinfo.value.code == 1
    assert "qld-data: failed (portal down)" in capsys.readouterr().out


def test_main_cli_reports_unexpected_errors(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fake_run(*_: object, **__: object) -> ExtractionRun:
        raise RuntimeError("database locked")

    monkeypatch.setattr(main_module, "run_extraction", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["extract", "acnc"])

    assert excinfo.value.code == 1
    assert "Error: database locked" in capsys.readouterr().err


def test_main_cli_test_sources(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_check(**kwargs: object) -> dict[str, AdapterStatus]:
        captured.update(kwargs)
        return {
            "acnc": AdapterStatus(
                source="acnc", status="success", estimated_records=60000, services_extracted=3
            ),
            "qld-data": AdapterStatus(source="qld-data", status="error", error="timed out"),
        }

    monkeypatch.setattr(main_module, "check_sources", fake_check)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["test-sources", "--sample-size", "3"])

    assert excinfo.value.code == 1
    assert captured == {"sample_size": 3}
    out = capsys.readouterr().out
    assert "acnc: ok (fetched 3, estimated total 60000)" in out
    assert "qld-data: error (timed out)" in out
