"""Translate Queensland dataset rows into source records."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from servicefinder.domain.model import SourceRecord

from .schema import QldServiceRow, resolve_columns

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

SOURCE_NAME = "qld-data"

DATASET_CATEGORIES: dict[str, tuple[str, ...]] = {
    "youth_justice_centres": ("youth_justice", "detention_services"),
    "youth_justice_service_centres": ("youth_justice", "case_management"),
    "community_services": ("community_services",),
}
YOUTH_CATEGORY = "youth_justice"


def is_youth_dataset(dataset: str) -> bool:
    """Only datasets catalogued under ``youth_justice`` count as youth services."""

    return YOUTH_CATEGORY in DATASET_CATEGORIES.get(dataset, ())


def _stable_id(dataset: str, row: QldServiceRow) -> str:
    if row.id:
        return f"{dataset}:{row.id}"
    key = "|".join((row.name, row.address or "", row.postcode or "")).casefold()
    return f"{dataset}:{hashlib.sha1(key.encode(), usedforsecurity=False).hexdigest()[:12]}"


def translate_row(
    raw: Mapping[str, str | None],
    *,
    dataset: str,
    extracted_at: datetime,
    source_url: str | None = None,
) -> SourceRecord:
    """Raises ``pydantic.ValidationError`` when the row has no usable name."""

    row = QldServiceRow.model_validate(resolve_columns(raw))
    fields: dict[str, object] = {
        "name": row.name,
        "description": row.description,
        "locations": [
            {
                "address": row.address,
                "city": row.suburb,
                "state": "QLD",
                "postcode": row.postcode,
                "latitude": row.latitude,
                "longitude": row.longitude,
            }
        ],
        "phone": row.phone,
        "email": row.email,
        "website": row.website,
        "categories": list(DATASET_CATEGORIES.get(dataset, ())),
        "youth_specific": is_youth_dataset(dataset),
    }
    return SourceRecord(
        source=SOURCE_NAME,
        source_id=_stable_id(dataset, row),
        fields=fields,
        source_url=source_url,
        extracted_at=extracted_at,
    )
