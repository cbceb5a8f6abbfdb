"""Extraction outcome value objects shared by adapters and jobs."""

from __future__ import annotations

from dataclasses import dataclass

from servicefinder.domain.model.enums import ExtractionErrorKind


@dataclass(frozen=True, slots=True)
class ExtractionError:
    """A non-fatal problem reported by an adapter (one page, dataset or record)."""

    kind: ExtractionErrorKind
    message: str
    context: str | None = None


@dataclass(frozen=True, slots=True)
class ExtractionStats:
    estimated_total: int | None
    fetched: int
