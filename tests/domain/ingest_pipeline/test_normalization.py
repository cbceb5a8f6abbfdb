from __future__ import annotations

from servicefinder.domain.ingest_pipeline import normalize_record, normalize_records
from servicefinder.domain.model import AgeRange, ContactChannel, ContactKind, Organization
from tests.support.services import EXTRACTED_AT, make_record


def test_normalize_record_maps_canonical_fields() -> None:
    record = make_record(
        "42",
        "  Brisbane   Youth Hub ",
        source="qld-data",
        description="Drop-in support",
        organization={"name": "Youth Hub Ltd", "abn": "11 111 111 111"},
        locations=[{"address": "12 Ann Street", "suburb": "Brisbane", "postcode": 4000.0}],
        phone="07 3000 1234",
        email="HELLO@BYH.ORG.AU",
        website="https://byh.org.au",
        categories="Youth Services, Mental Health",
        youth_specific="Y",
        minimum_age="12",
        maximum_age=25,
    )

    service = normalize_record(record)

    assert service is not None
    assert service.id == "qld-data:42"
    assert service.name == "Brisbane Youth Hub"
    assert service.organization == Organization("Youth Hub Ltd", "11 111 111 111")
    (location,) = service.locations
    assert location.city == "Brisbane"
    assert location.postal_code == "4000"
    assert service.contacts == (
        ContactChannel(ContactKind.PHONE, "07 3000 1234"),
        ContactChannel(ContactKind.EMAIL, "hello@byh.org.au"),
        ContactChannel(ContactKind.URL, "https://byh.org.au"),
    )
    assert service.categories == ("youth_services", "mental_health")
    assert service.youth_specific is True
    assert service.indigenous_specific is False
    assert service.age_range == AgeRange(12, 25)
    (provenance,) = service.provenance
    assert provenance.source_name == "qld-data"
    assert provenance.extracted_at == EXTRACTED_AT


def test_hsds_style_contacts_are_understood() -> None:
    record = make_record(
        "1",
        contacts=[
            {"phone": [{"number": "07 3000 1234"}], "email": "a@b.org.au"},
            {"kind": "url", "value": "https://b.org.au"},
        ],
    )

    service = normalize_record(record)

    assert service is not None
    assert service.phones == ("07 3000 1234",)
    assert service.emails == ("a@b.org.au",)
    assert service.urls == ("https://b.org.au",)


def test_unnamed_and_repeated_records_are_dropped_and_counted() -> None:
    records = [
        make_record("1"),
        make_record("2", None),
        make_record("3", "   "),
        make_record("1", "Brisbane Youth Hub (copy)"),
        make_record("4", "Cairns Legal Aid"),
    ]

    outcome = normalize_records(records)

    assert [service.id for service in outcome.services] == ["fake:1", "fake:4"]
    assert outcome.dropped_invalid == 3


def test_empty_locations_and_bad_coordinates_are_ignored() -> None:
    record = make_record(
        "1",
        locations=[{"address": ""}, {"city": "Cairns", "lat": "nan", "lng": "abc"}],
    )

    service = normalize_record(record)

    assert service is not None
    (location,) = service.locations
    assert location.city == "Cairns"
    assert location.latitude is None
    assert location.longitude is None
