"""Translate ACNC register rows into source records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from servicefinder.domain.model import SourceRecord

from .schema import AcncCharity

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

SOURCE_NAME = "acnc"


def _categories(charity: AcncCharity) -> list[str]:
    categories = ["charity"]
    if charity.youth:
        categories.append("youth_services")
    if charity.children:
        categories.append("children_services")
    if charity.aboriginal_or_tsi:
        categories.append("indigenous_services")
    return categories


def translate_charity(
    payload: Mapping[str, object],
    *,
    extracted_at: datetime,
    source_url: str | None = None,
) -> SourceRecord:
    """Validate one datastore row and map it onto the canonical field names.

    Raises ``pydantic.ValidationError`` for rows missing the ABN or legal name.
    """

    charity = AcncCharity.model_validate(payload)
    fields: dict[str, object] = {
        "name": charity.legal_name,
        "description": (
            f"Also known as {charity.other_names}" if charity.other_names else None
        ),
        "organization": {"name": charity.legal_name, "abn": charity.abn},
        "locations": [
            {
                "address": charity.street_address,
                "city": charity.town_city,
                "state": charity.state,
                "postcode": charity.postcode,
            }
        ],
        "website": charity.website,
        "categories": _categories(charity),
        "youth_specific": charity.youth,
        "indigenous_specific": charity.aboriginal_or_tsi,
    }
    return SourceRecord(
        source=SOURCE_NAME,
        source_id=charity.abn,
        fields=fields,
        source_url=source_url,
        extracted_at=extracted_at,
    )
