"""Deterministic merge of services classified as exact duplicates.

Precedence (highest first), identical for every run given the same inputs:

1. higher quality score (unscored records rank below any scored one)
2. more recently extracted
3. source name, ascending
4. service id, ascending

The first record in precedence order is the survivor. Scalar fields come from
the survivor, falling back to the first member that has a value. Locations,
contact channels and categories are unioned, demographic flags are OR'd and
the provenance of every member is kept.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from servicefinder.domain.ingest_pipeline.text import (
    normalize_address,
    normalize_email,
    normalize_phone,
    normalize_text,
)
from servicefinder.domain.model import (
    AgeRange,
    ContactChannel,
    ContactKind,
    Location,
    NormalizedService,
    Organization,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FieldConflict:
    """Two members disagreed on a scalar field; ``chosen`` won by precedence."""

    service_id: str
    field_name: str
    chosen: str
    discarded: str


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    service: NormalizedService
    conflicts: tuple[FieldConflict, ...]


def precedence_key(service: NormalizedService) -> tuple[float, float, str, str]:
    score = service.quality_score
    extracted_at = service.extracted_at
    timestamp = extracted_at.timestamp() if extracted_at is not None else float("-inf")
    source_name = service.provenance[0].source_name if service.provenance else ""
    return (
        -(score if score is not None else -1.0),
        -timestamp,
        source_name,
        service.id,
    )


def order_by_precedence(members: Iterable[NormalizedService]) -> list[NormalizedService]:
    return sorted(members, key=precedence_key)


def merge_services(
    members: Sequence[NormalizedService],
    *,
    keep_id: str | None = None,
) -> MergeOutcome:
    """Merge a cluster of duplicates into a single service.

    ``keep_id`` overrides the survivor id (used when merging into an already
    stored record so the sink updates it in place). The merged service carries
    no quality report; callers re-assess it.
    """

    if not members:
        raise ValueError("merge_services requires at least one member")
    ordered = order_by_precedence(members)
    survivor = ordered[0]
    merged_id = keep_id or survivor.id
    conflicts: list[FieldConflict] = []

    def pick[T](field_name: str, getter: Callable[[NormalizedService], T | None]) -> T | None:
        chosen: T | None = None
        for member in ordered:
            value = getter(member)
            if value is None:
                continue
            if chosen is None:
                chosen = value
            elif _comparable(value) != _comparable(chosen):
                conflicts.append(
                    FieldConflict(
                        service_id=merged_id,
                        field_name=field_name,
                        chosen=str(chosen),
                        discarded=str(value),
                    )
                )
        return chosen

    name = pick("name", lambda s: s.name) or survivor.name
    description = pick("description", lambda s: s.description)
    organization = Organization(
        name=pick("organization.name", lambda s: s.organization.name),
        registration_id=pick(
            "organization.registration_id", lambda s: s.organization.registration_id
        ),
    )
    age_range = pick("age_range", _bounded_age_range)

    absorbed = [member.id for member in ordered if member.id != merged_id]
    merged_from = _unique(
        [*absorbed, *(origin for member in ordered for origin in member.merged_from)]
    )
    merged = NormalizedService(
        id=merged_id,
        name=name,
        description=description,
        organization=organization,
        locations=_union_locations(ordered),
        contacts=_union_contacts(ordered),
        categories=_unique([category for member in ordered for category in member.categories]),
        youth_specific=any(member.youth_specific for member in ordered),
        indigenous_specific=any(member.indigenous_specific for member in ordered),
        age_range=age_range,
        provenance=_unique([entry for member in ordered for entry in member.provenance]),
        quality=None,
        merged_from=tuple(origin for origin in merged_from if origin != merged_id),
    )
    for conflict in conflicts:
        log.debug(
            "Merge conflict on %s.%s: kept %r over %r",
            conflict.service_id,
            conflict.field_name,
            conflict.chosen,
            conflict.discarded,
        )
    return MergeOutcome(service=merged, conflicts=tuple(conflicts))


def _bounded_age_range(service: NormalizedService) -> AgeRange | None:
    if service.age_range is None or not service.age_range.is_bounded:
        return None
    return service.age_range


def _comparable(value: object) -> object:
    if isinstance(value, str):
        return normalize_text(value)
    return value


def _unique[T](values: Iterable[T]) -> tuple[T, ...]:
    return tuple(dict.fromkeys(values))


def _location_key(location: Location) -> tuple[object, ...]:
    return (
        normalize_address(location.address),
        normalize_text(location.city),
        location.postal_code,
        location.latitude,
        location.longitude,
    )


def _union_locations(members: Iterable[NormalizedService]) -> tuple[Location, ...]:
    seen: dict[tuple[object, ...], Location] = {}
    for member in members:
        for location in member.locations:
            seen.setdefault(_location_key(location), location)
    return tuple(seen.values())


def _contact_key(contact: ContactChannel) -> tuple[ContactKind, str]:
    if contact.kind is ContactKind.PHONE:
        normalized = normalize_phone(contact.value)
    elif contact.kind is ContactKind.EMAIL:
        normalized = normalize_email(contact.value)
    else:
        normalized = contact.value.strip().casefold().rstrip("/")
    return (contact.kind, normalized or contact.value.strip().casefold())


def _union_contacts(members: Iterable[NormalizedService]) -> tuple[ContactChannel, ...]:
    seen: dict[tuple[ContactKind, str], ContactChannel] = {}
    for member in members:
        for contact in member.contacts:
            seen.setdefault(_contact_key(contact), contact)
    return tuple(seen.values())
