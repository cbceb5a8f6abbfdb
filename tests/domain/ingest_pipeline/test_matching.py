from __future__ import annotations

import itertools

import pytest

from servicefinder.config import MatchingConfig
from servicefinder.config.errors import ConfigurationError
from servicefinder.domain.ingest_pipeline.matching import (
    compare,
    contact_similarity,
    extract_features,
    haversine_meters,
    name_similarity,
)
from servicefinder.domain.model import MatchClassification
from tests.support.services import make_service


def test_same_name_and_phone_is_exact() -> None:
    left = make_service("acnc:1", "Brisbane Youth Hub", phone="07 3000 1234", postal_code="4000")
    right = make_service(
        "qld-data:9", "Brisbane Youth Hub Inc.", phone="+61 7 3000 1234", postal_code="4000"
    )

    pair = compare(left, right)

    assert pair.scores.name == pytest.approx(1.0)
    assert pair.scores.contact == 1.0
    assert pair.classification is MatchClassification.EXACT


def test_unrelated_services_do_not_match() -> None:
    left = make_service("a:1", "Brisbane Youth Hub", postal_code="4000")
    right = make_service("b:1", "Cairns Legal Aid", postal_code="4870")

    pair = compare(left, right)

    assert pair.classification is MatchClassification.NONE


def test_missing_location_and_contact_are_neutral() -> None:
    left = make_service("a:1", "Logan Family Support Network")
    right = make_service("b:1", "Logan Family Support Network")

    pair = compare(left, right)

    assert pair.scores.location is None
    assert pair.scores.contact is None
    assert pair.confidence == pytest.approx(pair.scores.name)


def test_partial_overlap_is_probable() -> None:
    left = make_service("a:1", "Brisbane Youth Hub", phone="07 3000 1234", postal_code="4000")
    right = make_service(
        "b:1", "Brisbane Youth Hub Annex", phone="07 3999 0000", postal_code="4000"
    )

    pair = compare(left, right)

    assert pair.scores.contact == 0.0
    assert pair.scores.location == pytest.approx(1.0)
    assert pair.classification is MatchClassification.PROBABLE

    strict = MatchingConfig(exact_threshold=0.95, probable_threshold=0.9)
    assert compare(left, right, strict).classification is MatchClassification.NONE


def test_nearby_coordinates_and_near_exact_name_short_circuit() -> None:
    left = make_service("a:1", "Townsville Youth Shelter", latitude=-19.2590, longitude=146.8169)
    right = make_service(
        "b:1", "Townsville Youth Shelter", latitude=-19.2595, longitude=146.8170, phone="0747000000"
    )

    pair = compare(left, right)

    assert pair.scores.location == 1.0
    assert pair.classification is MatchClassification.EXACT


def test_shared_website_domain_is_a_weaker_signal() -> None:
    config = MatchingConfig()
    left = extract_features(make_service("a:1", url="https://www.byh.org.au/about"), config)
    right = extract_features(make_service("b:1", url="http://byh.org.au"), config)

    assert contact_similarity(left, right) == pytest.approx(0.8)


def test_matching_is_symmetric() -> None:
    services = [
        make_service("a:1", "Brisbane Youth Hub", phone="07 3000 1234", postal_code="4000"),
        make_service("b:2", "Brisbane Youth Hub Annex", phone="07 3999 0000", postal_code="4000"),
        make_service("c:3", "Youth Hub Brisbane", address="12 Ann Street", postal_code="4000"),
        make_service("d:4", "Hub for Youth", email="info@hub.org.au", city="Brisbane"),
        make_service("e:5", "Brisbane Youth Hub", latitude=-27.46, longitude=153.02),
    ]

    for left, right in itertools.combinations(services, 2):
        forward = compare(left, right)
        backward = compare(right, left)
        assert forward.classification is backward.classification
        assert forward.confidence == backward.confidence
        assert forward.scores == backward.scores


def test_name_similarity_bounds() -> None:
    assert name_similarity((), ("hub",)) == 0.0
    assert name_similarity(("hub",), ("hub",)) == 1.0
    assert 0.0 < name_similarity(("youth", "hub"), ("youth", "centre")) < 1.0


def test_haversine_one_degree_of_latitude() -> None:
    assert haversine_meters(0.0, 0.0, 0.0, 0.0) == 0.0
    assert haversine_meters(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195, rel=1e-3)


def test_legal_suffix_only_names_keep_their_tokens() -> None:
    features = extract_features(make_service("a:1", "The Co Ltd"), MatchingConfig())

    assert features.name_tokens == ("the", "co", "ltd")


def test_thresholds_must_be_ordered() -> None:
    with pytest.raises(ConfigurationError):
        MatchingConfig(exact_threshold=0.6, probable_threshold=0.7)

    config = MatchingConfig()
    assert config.exact_threshold >= config.probable_threshold


def test_stop_token_names_at_the_same_address_are_exact() -> None:
    left = make_service("a:1", "Youth Support Service", address="12 Ann Street", city="Brisbane")
    right = make_service("b:1", "Youth Support Services", address="12 Ann Street", city="Brisbane")

    pair = compare(left, right)

    assert pair.scores.name >= 0.95
    assert pair.scores.location == pytest.approx(1.0)
    assert pair.classification is MatchClassification.EXACT


def test_blocking_keys_cover_addresses_coordinates_and_token_ends() -> None:
    config = MatchingConfig()
    stop_words_only = extract_features(
        make_service("a:1", "Youth Support Service", address="12 Ann Street"), config
    )
    located = extract_features(
        make_service("b:1", "Townsville Shelter", latitude=-19.2590, longitude=146.8169), config
    )
    across_cell_edge = extract_features(
        make_service("c:1", "Shelter", latitude=-19.2601, longitude=146.8169), config
    )

    assert stop_words_only.unselective is True
    assert "address:12 ann st" in stop_words_only.blocking_keys
    assert located.unselective is False
    assert {"name:town", "name-end:ille", "name:shel", "name-end:lter"} <= located.blocking_keys
    assert located.blocking_keys & across_cell_edge.blocking_keys >= {"name:shel"}
    cells = {key for key in located.blocking_keys if key.startswith("cell:")}
    assert len(cells) == 9
    assert cells & across_cell_edge.blocking_keys
