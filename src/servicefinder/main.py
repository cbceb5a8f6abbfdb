#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from servicefinder.app import ADAPTER_FACTORIES, check_sources, run_extraction
from servicefinder.config import configure_logging
from servicefinder.domain.model import JobState

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from servicefinder.app import ExtractionRun
    from servicefinder.domain.ingest_pipeline import AdapterStatus


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest community service records")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: %(default)s)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    extract = commands.add_parser("extract", help="Run an extraction job per source")
    extract.add_argument(
        "sources",
        nargs="+",
        choices=sorted(ADAPTER_FACTORIES),
        help="Sources to extract from",
    )
    extract.add_argument(
        "--limit",
        type=int,
        help="Maximum number of records to pull from each source",
    )
    extract.add_argument(
        "--dataset",
        dest="datasets",
        action="append",
        help="Dataset to extract from multi-dataset sources (repeatable)",
    )
    extract.add_argument(
        "--youth-only",
        action="store_true",
        help="Only request youth-focused records",
    )
    extract.add_argument(
        "--min-quality",
        type=float,
        help="Drop records scoring below this quality (0-1)",
    )
    extract.add_argument("--no-quality", action="store_true", help="Skip quality scoring")
    extract.add_argument("--no-dedup", action="store_true", help="Skip deduplication")
    extract.add_argument("--store", action="store_true", help="Store results in the database")
    extract.add_argument(
        "--dedupe-against-stored",
        action="store_true",
        help="Also match the batch against previously stored services",
    )

    check = commands.add_parser("test-sources", help="Check connectivity of every source")
    check.add_argument(
        "--sample-size",
        type=int,
        default=5,
        help="Records to fetch from each source (default: %(default)s)",
    )
    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "extract":
        if args.limit is not None and args.limit < 0:
            raise ValueError("Limit must be non-negative")
        if args.min_quality is not None and not 0.0 <= args.min_quality <= 1.0:
            raise ValueError("Minimum quality must be between 0 and 1")
    elif args.sample_size < 1:
        raise ValueError("Sample size must be at least 1")


def _print_run(run: ExtractionRun) -> None:
    for job in run.jobs:
        if job.state is JobState.COMPLETED and job.result is not None:
            result = job.result
            print(
                f"{job.source}: processed={result.services_processed} "
                f"stored={result.services_stored} duplicates={result.duplicates_found} "
                f"dropped={result.records_dropped} time={result.processing_time:.2f}s"
            )
        else:
            reason = job.error.message if job.error is not None else job.state.value
            print(f"{job.source}: failed ({reason})")
    stats = run.stats
    print(
        f"Jobs completed={stats.jobs_completed} failed={stats.jobs_failed}; "
        f"services processed={stats.services_processed} stored={stats.services_stored}"
    )


def _print_statuses(statuses: dict[str, AdapterStatus]) -> None:
    for name, status in statuses.items():
        if status.ok:
            print(
                f"{name}: ok (fetched {status.services_extracted}, "
                f"estimated total {status.estimated_records})"
            )
        else:
            print(f"{name}: error ({status.error})")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(argv if argv is not None else sys.argv[1:])
        _validate(parsed_args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(level=parsed_args.log_level)

    try:
        if parsed_args.command == "extract":
            extraction = run_extraction(
                parsed_args.sources,
                limit=parsed_args.limit,
                youth_only=parsed_args.youth_only,
                datasets=parsed_args.datasets,
                min_quality_score=parsed_args.min_quality,
                enable_quality_assessment=not parsed_args.no_quality,
                enable_deduplication=not parsed_args.no_dedup,
                store_results=parsed_args.store,
                dedupe_against_stored=parsed_args.dedupe_against_stored,
            )
            _print_run(extraction)
            failed = extraction.stats.jobs_failed
        else:
            statuses = check_sources(sample_size=parsed_args.sample_size)
            _print_statuses(statuses)
            failed = sum(1 for status in statuses.values() if not status.ok)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if failed:
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    run()
