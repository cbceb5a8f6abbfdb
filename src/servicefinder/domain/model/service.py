"""Source records and the canonical service shape the pipeline operates on."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType

from servicefinder.domain.model.enums import ContactKind
from servicefinder.domain.model.quality import QualityReport  # noqa: TC001


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceRecord:
    """Raw output of one adapter before normalization.

    ``fields`` holds the source-native payload already mapped onto the canonical
    key names (``name``, ``description``, ``organization``, ``locations``,
    ``contacts``, ``categories`` ...). The mapping is frozen on construction.
    """

    source: str
    source_id: str
    fields: Mapping[str, object]
    source_url: str | None = None
    extracted_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))


@dataclass(frozen=True, slots=True)
class Organization:
    name: str | None = None
    registration_id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Location:
    address: str | None = None
    city: str | None = None
    region: str | None = None
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_empty(self) -> bool:
        return not any((self.address, self.city, self.postal_code, self.has_coordinates))


@dataclass(frozen=True, slots=True)
class ContactChannel:
    kind: ContactKind
    value: str


@dataclass(frozen=True, slots=True)
class AgeRange:
    minimum: int | None = None
    maximum: int | None = None

    @property
    def is_bounded(self) -> bool:
        return self.minimum is not None or self.maximum is not None


@dataclass(frozen=True, slots=True)
class Provenance:
    source_name: str
    source_url: str | None
    extracted_at: datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class NormalizedService:
    """Canonical service record.

    ``id`` is source-scoped (``"<source>:<native id>"``) and not globally
    deduplicated. ``provenance`` lists every contributing source; after a merge
    it holds the provenance of all absorbed records, ``merged_from`` their ids.
    """

    id: str
    name: str
    description: str | None = None
    organization: Organization = field(default_factory=Organization)
    locations: tuple[Location, ...] = ()
    contacts: tuple[ContactChannel, ...] = ()
    categories: tuple[str, ...] = ()
    youth_specific: bool = False
    indigenous_specific: bool = False
    age_range: AgeRange | None = None
    provenance: tuple[Provenance, ...] = ()
    quality: QualityReport | None = None
    merged_from: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("NormalizedService.name must not be blank")

    def _channels(self, kind: ContactKind) -> tuple[str, ...]:
        return tuple(contact.value for contact in self.contacts if contact.kind is kind)

    @property
    def phones(self) -> tuple[str, ...]:
        return self._channels(ContactKind.PHONE)

    @property
    def emails(self) -> tuple[str, ...]:
        return self._channels(ContactKind.EMAIL)

    @property
    def urls(self) -> tuple[str, ...]:
        return self._channels(ContactKind.URL)

    @property
    def source_names(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(entry.source_name for entry in self.provenance))

    @property
    def extracted_at(self) -> datetime | None:
        if not self.provenance:
            return None
        return max(entry.extracted_at for entry in self.provenance)

    @property
    def quality_score(self) -> float | None:
        return self.quality.score if self.quality is not None else None
