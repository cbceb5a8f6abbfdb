"""Map adapter output onto the canonical service shape."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from logging import getLogger
from typing import cast

from servicefinder.domain.ingest_pipeline.text import (
    clean_text,
    normalize_category,
    normalize_email,
    normalize_postal_code,
)
from servicefinder.domain.model import (
    AgeRange,
    ContactChannel,
    ContactKind,
    Location,
    NormalizedService,
    Organization,
    Provenance,
    SourceRecord,
)

log = getLogger(__name__)

_TRUE_STRINGS = frozenset({"y", "yes", "true", "1", "t"})
_CONTACT_KINDS = frozenset(kind.value for kind in ContactKind)


@dataclass(slots=True)
class NormalizationOutcome:
    services: list[NormalizedService]
    dropped_invalid: int = 0


def normalize_records(records: Iterable[SourceRecord]) -> NormalizationOutcome:
    """Normalize a batch, dropping (and counting) unnamed records and repeated ids."""

    outcome = NormalizationOutcome(services=[])
    seen_ids: set[str] = set()
    for record in records:
        service = normalize_record(record)
        if service is None or service.id in seen_ids:
            outcome.dropped_invalid += 1
            continue
        seen_ids.add(service.id)
        outcome.services.append(service)
    if outcome.dropped_invalid:
        log.info("Dropped %d unnamed or repeated records", outcome.dropped_invalid)
    return outcome


def normalize_record(record: SourceRecord) -> NormalizedService | None:
    fields = record.fields
    name = clean_text(fields.get("name"))
    if name is None:
        log.debug("Dropping %s:%s, missing name", record.source, record.source_id)
        return None

    return NormalizedService(
        id=f"{record.source}:{record.source_id}",
        name=name,
        description=clean_text(fields.get("description")),
        organization=_organization(fields.get("organization")),
        locations=_locations(fields),
        contacts=_contacts(fields),
        categories=_categories(fields.get("categories")),
        youth_specific=_as_bool(fields.get("youth_specific")),
        indigenous_specific=_as_bool(fields.get("indigenous_specific")),
        age_range=_age_range(fields),
        provenance=(
            Provenance(
                source_name=record.source,
                source_url=record.source_url,
                extracted_at=record.extracted_at,
            ),
        ),
    )


def _organization(value: object) -> Organization:
    if isinstance(value, str):
        return Organization(name=clean_text(value))
    if not isinstance(value, Mapping):
        return Organization()
    mapping = cast(Mapping[str, object], value)
    registration = mapping.get("registration_id") or mapping.get("abn")
    return Organization(
        name=clean_text(mapping.get("name")),
        registration_id=clean_text(registration),
    )


def _locations(fields: Mapping[str, object]) -> tuple[Location, ...]:
    raw = fields.get("locations")
    entries: list[Mapping[str, object]] = []
    if isinstance(raw, Mapping):
        entries.append(cast(Mapping[str, object], raw))
    elif isinstance(raw, Sequence) and not isinstance(raw, str):
        entries.extend(
            cast(Mapping[str, object], item) for item in raw if isinstance(item, Mapping)
        )

    locations: list[Location] = []
    for entry in entries:
        location = Location(
            address=clean_text(_first(entry, "address", "address_1", "street")),
            city=clean_text(_first(entry, "city", "suburb", "town")),
            region=clean_text(_first(entry, "region", "state", "state_province")),
            postal_code=normalize_postal_code(_first(entry, "postal_code", "postcode")),
            latitude=_as_float(_first(entry, "latitude", "lat")),
            longitude=_as_float(_first(entry, "longitude", "lng", "lon")),
        )
        if not location.is_empty and location not in locations:
            locations.append(location)
    return tuple(locations)


def _contacts(fields: Mapping[str, object]) -> tuple[ContactChannel, ...]:
    channels: list[ContactChannel] = []

    def add(kind: ContactKind, value: object) -> None:
        text = clean_text(value)
        if text is None:
            return
        if kind is ContactKind.EMAIL:
            text = normalize_email(text) or text
        channel = ContactChannel(kind=kind, value=text)
        if channel not in channels:
            channels.append(channel)

    raw = fields.get("contacts")
    if isinstance(raw, Sequence) and not isinstance(raw, str):
        for item in raw:
            if not isinstance(item, Mapping):
                continue
            entry = cast(Mapping[str, object], item)
            kind = entry.get("kind")
            if isinstance(kind, str) and kind in _CONTACT_KINDS:
                add(ContactKind(kind), entry.get("value"))
                continue
            # HSDS style: {"phone": [{"number": ...}], "email": ..., "url": ...}
            for phone in _as_list(entry.get("phone")):
                number = phone.get("number") if isinstance(phone, Mapping) else phone
                add(ContactKind.PHONE, number)
            add(ContactKind.EMAIL, entry.get("email"))
            add(ContactKind.URL, entry.get("url") or entry.get("website"))

    for phone in _as_list(fields.get("phone")):
        add(ContactKind.PHONE, phone)
    for email in _as_list(fields.get("email")):
        add(ContactKind.EMAIL, email)
    for url in _as_list(fields.get("url") or fields.get("website")):
        add(ContactKind.URL, url)
    return tuple(channels)


def _categories(value: object) -> tuple[str, ...]:
    items: list[object]
    if isinstance(value, str):
        items = list(value.split(","))
    elif isinstance(value, Sequence):
        items = list(cast(Sequence[object], value))
    else:
        return ()
    categories: list[str] = []
    for item in items:
        category = normalize_category(str(item))
        if category and category not in categories:
            categories.append(category)
    return tuple(categories)


def _age_range(fields: Mapping[str, object]) -> AgeRange | None:
    raw = fields.get("age_range")
    if isinstance(raw, Mapping):
        mapping = cast(Mapping[str, object], raw)
        minimum = _as_int(_first(mapping, "minimum", "min"))
        maximum = _as_int(_first(mapping, "maximum", "max"))
    else:
        minimum = _as_int(fields.get("minimum_age"))
        maximum = _as_int(fields.get("maximum_age"))
    age_range = AgeRange(minimum=minimum, maximum=maximum)
    return age_range if age_range.is_bounded else None


def _first(mapping: Mapping[str, object], *keys: str) -> object:
    for key in keys:
        value = mapping.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_list(value: object) -> list[object]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(cast(Sequence[object], value))
    return [value]


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().casefold() in _TRUE_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _as_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _as_int(value: object) -> int | None:
    number = _as_float(value)
    if number is None:
        return None
    return int(number)
