from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002

from servicefinder.adapters.sqlalchemy import create_sink_engine
from servicefinder.config import MatchingConfig, QualityConfig
from servicefinder.domain.ingest_pipeline import DeduplicationEngine, QualityEngine

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def quality_engine() -> QualityEngine:
    return QualityEngine(QualityConfig())


@pytest.fixture
def dedup_engine() -> DeduplicationEngine:
    return DeduplicationEngine(MatchingConfig())


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_sink_engine("sqlite+pysqlite:///:memory:")
    try:
        yield engine
    finally:
        engine.dispose()
