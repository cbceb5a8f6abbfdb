"""Pairwise similarity scoring and classification for duplicate detection.

Responsibilities of this stage:
- derive comparable features (name tokens, contact keys, locations) once per record
- score a pair on name, location and contact similarity
- classify the pair as ``exact`` / ``probable`` / ``none``
- provide coarse blocking keys so large batches avoid full pairwise comparison

Every score here is symmetric: ``compare(a, b)`` and ``compare(b, a)`` produce
the same scores, confidence and classification. Order-sensitive primitives
(``SequenceMatcher``) are always fed their arguments in sorted order.

Blocking keys only decide which pairs are compared; classification never looks
at them. Keys cover contact values, postcodes, street addresses, a coarse
coordinate grid and both ends of every significant name token. A name made only
of stop tokens yields no selective key, so such a record is compared against
every other record when blocking is in use.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from difflib import SequenceMatcher
from logging import getLogger
from typing import TYPE_CHECKING

from servicefinder.config.matching import MatchingConfig
from servicefinder.domain.ingest_pipeline.text import (
    name_tokens,
    normalize_address,
    normalize_domain,
    normalize_email,
    normalize_phone,
    normalize_text,
)
from servicefinder.domain.model import (
    MatchCandidatePair,
    MatchClassification,
    SimilarityScores,
)

if TYPE_CHECKING:
    from servicefinder.domain.model import Location, NormalizedService

log = getLogger(__name__)

EARTH_RADIUS_METERS = 6_371_000.0

_ADDRESS_WEIGHT = 0.5
_POSTAL_CODE_WEIGHT = 0.3
_CITY_WEIGHT = 0.2
_DOMAIN_MATCH_SCORE = 0.8


@dataclass(frozen=True, slots=True)
class ComparableLocation:
    address: str | None
    city: str | None
    postal_code: str | None
    latitude: float | None
    longitude: float | None


@dataclass(frozen=True, slots=True)
class MatchFeatures:
    """Normalized, comparison-ready view of one service."""

    service_id: str
    name_tokens: tuple[str, ...]
    phones: frozenset[str]
    emails: frozenset[str]
    domains: frozenset[str]
    locations: tuple[ComparableLocation, ...]
    blocking_keys: frozenset[str]
    # compared against every record in blocked mode
    unselective: bool = False

    @property
    def has_contact(self) -> bool:
        return bool(self.phones or self.emails or self.domains)


def extract_features(service: NormalizedService, config: MatchingConfig) -> MatchFeatures:
    tokens = name_tokens(service.name, drop=config.legal_suffixes)
    if not tokens:
        # a name made only of legal suffixes ("The Co Ltd") keeps its tokens
        tokens = name_tokens(service.name)

    phones = frozenset(p for p in (normalize_phone(v) for v in service.phones) if p)
    emails = frozenset(e for e in (normalize_email(v) for v in service.emails) if e)
    domains = frozenset(d for d in (normalize_domain(v) for v in service.urls) if d)
    locations = tuple(
        _comparable_location(location) for location in service.locations if not location.is_empty
    )
    name_keys = _name_keys(tokens, config)
    return MatchFeatures(
        service_id=service.id,
        name_tokens=tokens,
        phones=phones,
        emails=emails,
        domains=domains,
        locations=locations,
        blocking_keys=frozenset(
            name_keys | _contact_keys(phones, emails, domains) | _location_keys(locations, config)
        ),
        unselective=not name_keys,
    )


def _comparable_location(location: Location) -> ComparableLocation:
    return ComparableLocation(
        address=normalize_address(location.address),
        city=normalize_text(location.city),
        postal_code=location.postal_code,
        latitude=location.latitude,
        longitude=location.longitude,
    )


def _name_keys(tokens: tuple[str, ...], config: MatchingConfig) -> set[str]:
    length = config.blocking_prefix_length
    keys: set[str] = set()
    for token in tokens:
        if token in config.blocking_stop_tokens:
            continue
        keys.add(f"name:{token[:length]}")
        keys.add(f"name-end:{token[-length:]}")
    return keys


def _contact_keys(
    phones: frozenset[str], emails: frozenset[str], domains: frozenset[str]
) -> set[str]:
    keys = {f"phone:{phone}" for phone in phones}
    keys.update(f"email:{email}" for email in emails)
    keys.update(f"domain:{domain}" for domain in domains)
    return keys


def _location_keys(locations: tuple[ComparableLocation, ...], config: MatchingConfig) -> set[str]:
    keys: set[str] = set()
    for location in locations:
        if location.postal_code:
            keys.add(f"postcode:{location.postal_code}")
        if location.address:
            keys.add(f"address:{location.address}")
        if location.latitude is not None and location.longitude is not None:
            row = math.floor(location.latitude / config.blocking_cell_degrees)
            column = math.floor(location.longitude / config.blocking_cell_degrees)
            keys.update(
                f"cell:{row + d_row}:{column + d_column}"
                for d_row in (-1, 0, 1)
                for d_column in (-1, 0, 1)
            )
    return keys


# --- similarity primitives ----------------------------------------------------


def _ordered_ratio(left: str, right: str) -> float:
    first, second = sorted((left, right))
    return SequenceMatcher(None, first, second).ratio()


def name_similarity(left: tuple[str, ...], right: tuple[str, ...]) -> float:
    """Best of token Jaccard and character similarity of the sorted token strings."""

    if not left or not right:
        return 0.0
    left_set, right_set = set(left), set(right)
    jaccard = len(left_set & right_set) / len(left_set | right_set)
    character = _ordered_ratio(" ".join(sorted(left_set)), " ".join(sorted(right_set)))
    return max(jaccard, character)


def haversine_meters(
    latitude_a: float, longitude_a: float, latitude_b: float, longitude_b: float
) -> float:
    phi_a, phi_b = math.radians(latitude_a), math.radians(latitude_b)
    delta_phi = phi_b - phi_a
    delta_lambda = math.radians(longitude_b - longitude_a)
    h = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi_a) * math.cos(phi_b) * math.sin(delta_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


def _proximity_score(
    left: ComparableLocation, right: ComparableLocation, config: MatchingConfig
) -> float | None:
    if (
        left.latitude is None
        or left.longitude is None
        or right.latitude is None
        or right.longitude is None
    ):
        return None
    distance = haversine_meters(left.latitude, left.longitude, right.latitude, right.longitude)
    if distance <= config.proximity_radius_meters:
        return 1.0
    span = config.proximity_falloff_meters - config.proximity_radius_meters
    if span <= 0:
        return 0.0
    return max(0.0, 1.0 - (distance - config.proximity_radius_meters) / span)


def _textual_location_score(left: ComparableLocation, right: ComparableLocation) -> float | None:
    weighted = 0.0
    total_weight = 0.0
    if left.address and right.address:
        weighted += _ADDRESS_WEIGHT * _ordered_ratio(left.address, right.address)
        total_weight += _ADDRESS_WEIGHT
    if left.postal_code and right.postal_code:
        weighted += _POSTAL_CODE_WEIGHT * float(left.postal_code == right.postal_code)
        total_weight += _POSTAL_CODE_WEIGHT
    if left.city and right.city:
        weighted += _CITY_WEIGHT * float(left.city == right.city)
        total_weight += _CITY_WEIGHT
    if total_weight == 0.0:
        return None
    return weighted / total_weight


def location_similarity(
    left: tuple[ComparableLocation, ...],
    right: tuple[ComparableLocation, ...],
    config: MatchingConfig,
) -> float | None:
    """Best score over all location pairs; ``None`` when nothing is comparable."""

    best: float | None = None
    for left_location in left:
        for right_location in right:
            candidates = [
                score
                for score in (
                    _proximity_score(left_location, right_location, config),
                    _textual_location_score(left_location, right_location),
                )
                if score is not None
            ]
            if candidates and (best is None or max(candidates) > best):
                best = max(candidates)
    return best


def contact_similarity(left: MatchFeatures, right: MatchFeatures) -> float | None:
    if not (left.has_contact and right.has_contact):
        return None
    if left.phones & right.phones or left.emails & right.emails:
        return 1.0
    if left.domains & right.domains:
        return _DOMAIN_MATCH_SCORE
    return 0.0


# --- classification -----------------------------------------------------------


def combined_confidence(scores: SimilarityScores, config: MatchingConfig) -> float:
    """Weighted mean over the dimensions that could be compared.

    Missing location or contact data is neutral: its weight is dropped and the
    remaining weights are renormalized.
    """

    weighted = scores.name * config.name_weight
    total_weight = config.name_weight
    if scores.location is not None:
        weighted += scores.location * config.location_weight
        total_weight += config.location_weight
    if scores.contact is not None:
        weighted += scores.contact * config.contact_weight
        total_weight += config.contact_weight
    return min(max(weighted / total_weight, 0.0), 1.0)


def classify(
    scores: SimilarityScores, confidence: float, config: MatchingConfig
) -> MatchClassification:
    if scores.contact == 1.0 and scores.name >= config.contact_short_circuit_min_name:
        return MatchClassification.EXACT
    if (
        scores.name >= config.near_exact_name
        and scores.location is not None
        and scores.location >= config.same_location
    ):
        return MatchClassification.EXACT
    if confidence >= config.exact_threshold:
        return MatchClassification.EXACT
    if confidence >= config.probable_threshold:
        return MatchClassification.PROBABLE
    return MatchClassification.NONE


def compare_features(
    left: MatchFeatures, right: MatchFeatures, config: MatchingConfig
) -> MatchCandidatePair:
    scores = SimilarityScores(
        name=name_similarity(left.name_tokens, right.name_tokens),
        location=location_similarity(left.locations, right.locations, config),
        contact=contact_similarity(left, right),
    )
    confidence = combined_confidence(scores, config)
    classification = classify(scores, confidence, config)
    if classification is not MatchClassification.NONE:
        log.debug(
            "Pair %s / %s: %s (confidence=%.3f, scores=%s)",
            left.service_id,
            right.service_id,
            classification.value,
            confidence,
            scores,
        )
    return MatchCandidatePair(
        left_id=left.service_id,
        right_id=right.service_id,
        scores=scores,
        confidence=confidence,
        classification=classification,
    )


def compare(
    left: NormalizedService,
    right: NormalizedService,
    config: MatchingConfig | None = None,
) -> MatchCandidatePair:
    """Score and classify a single pair of services."""

    config = config or MatchingConfig()
    return compare_features(
        extract_features(left, config), extract_features(right, config), config
    )
