"""Row schema for Queensland open-data service CSVs.

Column headings differ between datasets; ``resolve_columns`` maps the known
variants onto one set of field names before validation.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

if TYPE_CHECKING:
    from collections.abc import Mapping

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "service id", "centre id", "site id"),
    "name": (
        "name",
        "service name",
        "centre",
        "centre name",
        "service centre",
        "service",
        "organisation",
        "organisation name",
    ),
    "description": ("description", "service description", "services", "services offered"),
    "address": ("address", "street address", "street", "address line 1", "location"),
    "suburb": ("suburb", "town", "locality", "city"),
    "postcode": ("postcode", "post code", "postal code"),
    "phone": ("phone", "telephone", "phone number", "contact phone"),
    "email": ("email", "email address", "contact email"),
    "website": ("website", "url", "web", "web address"),
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "long", "lng", "lon"),
}


def resolve_columns(row: Mapping[str, str | None]) -> dict[str, str]:
    """Return the first non-blank value for every known field, keyed by field name."""

    by_heading = {
        heading.strip().casefold(): value.strip()
        for heading, value in row.items()
        if heading and value and value.strip()
    }
    resolved: dict[str, str] = {}
    for field_name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in by_heading:
                resolved[field_name] = by_heading[alias]
                break
    return resolved


class QldServiceRow(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str
    id: str | None = None
    description: str | None = None
    address: str | None = None
    suburb: str | None = None
    postcode: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _lenient_coordinate(cls, value: object, info: ValidationInfo) -> float | None:
        """Unparseable or out-of-range coordinates become ``None``; the row is kept."""

        if isinstance(value, bool):
            return None
        if isinstance(value, int | float):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value)
            except ValueError:
                return None
        else:
            return None
        limit = 90.0 if info.field_name == "latitude" else 180.0
        if not math.isfinite(number) or abs(number) > limit:
            return None
        return number
