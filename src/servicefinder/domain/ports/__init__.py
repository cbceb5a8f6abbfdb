"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import (
    ClosableAdapter,
    ExtractionOptions,
    ExtractionResult,
    FatalExtractionError,
    SourceAdapter,
    TransientExtractionError,
)
from .persistence import ClosableSink, CorpusSource, ResultSink, StoreError, StoreResult

__all__ = [
    "ClosableAdapter",
    "ClosableSink",
    "CorpusSource",
    "ExtractionOptions",
    "ExtractionResult",
    "FatalExtractionError",
    "ResultSink",
    "SourceAdapter",
    "StoreError",
    "StoreResult",
    "TransientExtractionError",
]
