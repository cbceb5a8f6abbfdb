"""Public interface for the Queensland open data adapter."""

from __future__ import annotations

from .client import QldDataAdapter
from .schema import QldServiceRow, resolve_columns
from .translator import SOURCE_NAME, is_youth_dataset, translate_row

__all__ = [
    "SOURCE_NAME",
    "QldDataAdapter",
    "QldServiceRow",
    "is_youth_dataset",
    "resolve_columns",
    "translate_row",
]
