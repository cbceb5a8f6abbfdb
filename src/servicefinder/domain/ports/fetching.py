"""Ports for extracting service records from external sources."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from servicefinder.domain.model import ExtractionError, ExtractionStats

if TYPE_CHECKING:
    from collections.abc import Iterable

    from servicefinder.domain.model import SourceRecord


class FatalExtractionError(RuntimeError):
    """Raised by an adapter when no usable data could be retrieved at all."""


class TransientExtractionError(RuntimeError):
    """Raised by an adapter when a whole extraction may succeed if retried."""


@dataclass(frozen=True, slots=True, kw_only=True)
class ExtractionOptions:
    """Options handed to ``SourceAdapter.extract``.

    Adapters must stop at or before ``limit`` records. ``filters`` and
    ``datasets`` are source-specific and passed through unmodified.
    """

    limit: int | None = None
    filters: Mapping[str, object] = field(default_factory=dict[str, object])
    datasets: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", MappingProxyType(dict(self.filters)))

    def flag(self, name: str) -> bool:
        return bool(self.filters.get(name, False))


@dataclass(slots=True)
class ExtractionResult:
    """Records plus run metadata returned by one extraction."""

    records: Iterable[SourceRecord]
    stats: ExtractionStats
    errors: list[ExtractionError] = field(default_factory=list[ExtractionError])


@runtime_checkable
class SourceAdapter(Protocol):
    """Uniform extraction contract implemented once per external source.

    Partial failures (one page, one dataset) are reported in
    ``ExtractionResult.errors``. Only when nothing usable was retrieved does
    ``extract`` raise ``FatalExtractionError``.
    """

    async def extract(self, options: ExtractionOptions) -> ExtractionResult: ...


@runtime_checkable
class ClosableAdapter(Protocol):
    async def aclose(self) -> None: ...


def truncate_records[T](records: list[T], limit: int | None) -> list[T]:
    if limit is None:
        return records
    return records[:limit]


__all__ = [
    "ClosableAdapter",
    "ExtractionError",
    "ExtractionOptions",
    "ExtractionResult",
    "ExtractionStats",
    "FatalExtractionError",
    "SourceAdapter",
    "TransientExtractionError",
    "truncate_records",
]
