"""Builders for source records and normalized services used across tests."""

from __future__ import annotations

from datetime import UTC, datetime

from servicefinder.domain.model import (
    AgeRange,
    ContactChannel,
    ContactKind,
    Location,
    NormalizedService,
    Organization,
    Provenance,
    QualityReport,
    SourceRecord,
)

EXTRACTED_AT = datetime(2025, 3, 1, 9, 30, tzinfo=UTC)


def make_record(
    source_id: str,
    name: str | None = "Brisbane Youth Hub",
    *,
    source: str = "fake",
    extracted_at: datetime = EXTRACTED_AT,
    **fields: object,
) -> SourceRecord:
    """Create a source record whose fields already use the canonical keys."""

    payload: dict[str, object] = {"name": name, **fields}
    return SourceRecord(
        source=source,
        source_id=source_id,
        fields=payload,
        source_url=f"https://example.org/{source}/{source_id}",
        extracted_at=extracted_at,
    )


def make_service(
    service_id: str = "fake:1",
    name: str = "Brisbane Youth Hub",
    *,
    description: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    url: str | None = None,
    address: str | None = None,
    city: str | None = None,
    postal_code: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    categories: tuple[str, ...] = (),
    youth_specific: bool = False,
    indigenous_specific: bool = False,
    age_range: AgeRange | None = None,
    organization: Organization | None = None,
    source: str = "fake",
    extracted_at: datetime = EXTRACTED_AT,
    score: float | None = None,
) -> NormalizedService:
    contacts: list[ContactChannel] = []
    if phone is not None:
        contacts.append(ContactChannel(ContactKind.PHONE, phone))
    if email is not None:
        contacts.append(ContactChannel(ContactKind.EMAIL, email))
    if url is not None:
        contacts.append(ContactChannel(ContactKind.URL, url))
    location = Location(
        address=address,
        city=city,
        region="QLD" if (address or city or postal_code) else None,
        postal_code=postal_code,
        latitude=latitude,
        longitude=longitude,
    )
    quality = (
        QualityReport(
            service_id=service_id,
            score=score,
            completeness=score,
            contactability=score,
            specificity=score,
        )
        if score is not None
        else None
    )
    return NormalizedService(
        id=service_id,
        name=name,
        description=description,
        organization=organization or Organization(),
        locations=() if location.is_empty else (location,),
        contacts=tuple(contacts),
        categories=categories,
        youth_specific=youth_specific,
        indigenous_specific=indigenous_specific,
        age_range=age_range,
        provenance=(
            Provenance(source_name=source, source_url=None, extracted_at=extracted_at),
        ),
        quality=quality,
    )


def complete_service(service_id: str = "fake:full", **overrides: object) -> NormalizedService:
    """A service with every optional field populated and valid."""

    values: dict[str, object] = {
        "name": "Brisbane Youth Hub",
        "description": "Drop-in support for young people",
        "phone": "(07) 3000 1234",
        "email": "hello@byh.org.au",
        "url": "https://www.byh.org.au",
        "address": "12 Ann Street",
        "city": "Brisbane",
        "postal_code": "4000",
        "latitude": -27.4679,
        "longitude": 153.0281,
        "categories": ("youth_services", "mental_health"),
        "youth_specific": True,
        "age_range": AgeRange(12, 25),
    }
    values.update(overrides)
    return make_service(service_id, **values)  # type: ignore[arg-type]
