from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping  # noqa: TC003
from datetime import UTC, datetime

import httpx
import pytest
from pydantic import ValidationError

from servicefinder.adapters.qld_data import (
    QldDataAdapter,
    QldServiceRow,
    is_youth_dataset,
    resolve_columns,
    translate_row,
)
from servicefinder.config.http_resilience import ResilienceConfig
from servicefinder.config.sources import QldDataConfig
from servicefinder.domain.model import ExtractionErrorKind
from servicefinder.domain.ports.fetching import (
    ExtractionOptions,
    ExtractionResult,
    FatalExtractionError,
    TransientExtractionError,
)
from tests.support.http import make_client_factory

BASE_URL = "https://qld.example/api/3/action/"

CENTRES_CSV = (
    "\ufeffCentre Name,Street Address,Suburb,Postcode,Phone,Latitude,Longitude\n"
    "Brisbane Youth Detention Centre,99 Wolston Park Road,Wacol,4076,07 3271 0111,-27.58,152.92\n"
    "Cleveland Youth Detention Centre,1 Grindle Road,Townsville,4810,07 4799 8111,,\n"
)
COMMUNITY_CSV = (
    "Service ID,Organisation Name,Services Offered,Town,Email\n"
    "17,Logan Family Support,Family counselling,Logan Central,hello@lfs.org.au\n"
    "18,,Unnamed service,Ipswich,\n"
)


class _Portal:
    """Serves ``package_show`` plus one CSV download per configured package."""

    def __init__(self, files: dict[str, str], *, failures: dict[str, int] | None = None) -> None:
        self.files = files
        self.failures = failures or {}
        self.packages: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "files.example":
            package_id = request.url.path.strip("/").removesuffix(".csv")
            return httpx.Response(200, text=self.files[package_id])
        assert request.url.path.endswith("package_show")
        package_id = request.url.params["id"]
        self.packages.append(package_id)
        if package_id in self.failures:
            return httpx.Response(self.failures[package_id])
        return httpx.Response(
            200,
            json={
                "success": True,
                "result": {
                    "id": package_id,
                    "name": package_id,
                    "resources": [
                        {"id": "json", "format": "JSON", "url": "https://files.example/x.json"},
                        {
                            "id": "csv",
                            "format": " csv ",
                            "url": f"https://files.example/{package_id}.csv",
                        },
                    ],
                },
            },
        )


def _adapter(handler: Callable[[httpx.Request], httpx.Response]) -> QldDataAdapter:
    return QldDataAdapter(
        config=QldDataConfig(
            resilience=ResilienceConfig(name="qld-data", base_url=BASE_URL, cache=None),
            datasets={
                "youth_justice_centres": "yj-centres",
                "community_services": "community-directory",
            },
        ),
        client_factory=make_client_factory(handler),
    )


def _extract(adapter: QldDataAdapter, options: ExtractionOptions | None = None) -> ExtractionResult:
    async def _run() -> ExtractionResult:
        try:
            return await adapter.extract(options or ExtractionOptions())
        finally:
            await adapter.aclose()

    return asyncio.run(_run())


def _portal(**failures: int) -> _Portal:
    return _Portal(
        {"yj-centres": CENTRES_CSV, "community-directory": COMMUNITY_CSV},
        failures={key.replace("_", "-"): status for key, status in failures.items()},
    )


def _locations(fields: Mapping[str, object]) -> list[dict[str, object]]:
    locations = fields["locations"]
    assert isinstance(locations, list)
    return locations


def test_adapter_reads_every_configured_dataset() -> None:
    portal = _portal()

    result = _extract(_adapter(portal))

    records = list(result.records)
    assert portal.packages == ["yj-centres", "community-directory"]
    assert [record.fields["name"] for record in records] == [
        "Brisbane Youth Detention Centre",
        "Cleveland Youth Detention Centre",
        "Logan Family Support",
    ]
    assert records[0].source == "qld-data"
    assert records[0].source_url == "https://files.example/yj-centres.csv"
    assert records[0].fields["youth_specific"] is True
    assert records[0].fields["categories"] == ["youth_justice", "detention_services"]
    assert records[2].source_id == "community_services:17"
    assert records[2].fields["youth_specific"] is False
    (error,) = result.errors
    assert error.kind is ExtractionErrorKind.INVALID_RECORD
    assert error.context == "qld-data community_services row 2"
    assert error.message.startswith("invalid row (name: ")
    assert result.stats.estimated_total == 4
    assert result.stats.fetched == 3


def test_selected_datasets_and_unknown_package_ids() -> None:
    portal = _Portal({"other-package": COMMUNITY_CSV})

    result = _extract(_adapter(portal), ExtractionOptions(datasets=("other-package",)))

    assert portal.packages == ["other-package"]
    assert [record.source_id for record in result.records] == ["other-package:17"]


def test_youth_only_skips_general_datasets() -> None:
    portal = _portal()

    result = _extract(_adapter(portal), ExtractionOptions(filters={"youth_only": True}))

    assert portal.packages == ["yj-centres"]
    assert len(list(result.records)) == 2


def test_youth_only_uses_catalogued_datasets_not_names() -> None:
    portal = _Portal({"youth-hub-listing": COMMUNITY_CSV, "yj-centres": CENTRES_CSV})

    result = _extract(
        _adapter(portal),
        ExtractionOptions(
            datasets=("youth-hub-listing", "youth_justice_centres"),
            filters={"youth_only": True},
        ),
    )

    assert portal.packages == ["yj-centres"]
    assert len(list(result.records)) == 2
    assert is_youth_dataset("youth_justice_service_centres") is True
    assert is_youth_dataset("youth-hub-listing") is False


def test_named_row_with_malformed_coordinates_is_kept() -> None:
    csv_text = (
        "Service Name,Postcode,Latitude,Longitude\n"
        "Brisbane Youth Hub,4000,N/A,153.02\n"
        "Cairns Outreach,4870,\"-16.92,145.77\",\n"
        "Logan Drop In,4114,-127.5,153.1\n"
    )
    portal = _Portal({"community-directory": csv_text})

    result = _extract(_adapter(portal), ExtractionOptions(datasets=("community_services",)))

    assert result.errors == []
    names = [record.fields["name"] for record in result.records]
    assert names == ["Brisbane Youth Hub", "Cairns Outreach", "Logan Drop In"]
    coordinates = [
        (location["latitude"], location["longitude"])
        for record in result.records
        for location in _locations(record.fields)
    ]
    assert coordinates == [(None, 153.02), (None, None), (None, 153.1)]


def test_failed_dataset_is_reported_and_others_are_kept() -> None:
    portal = _portal(yj_centres=500)

    result = _extract(_adapter(portal))

    assert [record.fields["name"] for record in result.records] == ["Logan Family Support"]
    kinds = [error.kind for error in result.errors]
    assert kinds == [ExtractionErrorKind.UNAVAILABLE, ExtractionErrorKind.INVALID_RECORD]
    assert result.errors[0].context == "qld-data dataset youth_justice_centres"


def test_limit_stops_across_datasets() -> None:
    portal = _portal()

    result = _extract(_adapter(portal), ExtractionOptions(limit=2))

    assert len(list(result.records)) == 2
    assert portal.packages == ["yj-centres"]


def test_all_datasets_unavailable_is_transient() -> None:
    portal = _portal(yj_centres=503, community_directory=502)

    with pytest.raises(TransientExtractionError):
        _extract(_adapter(portal))


def test_missing_csv_resource_is_fatal() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        package_id = request.url.params["id"]
        return httpx.Response(
            200, json={"success": True, "result": {"id": package_id, "name": package_id}}
        )

    with pytest.raises(FatalExtractionError, match="no CSV resource"):
        _extract(_adapter(handler))


def test_resolve_columns_uses_the_first_known_heading() -> None:
    resolved = resolve_columns(
        {
            " Service Name ": " Youth Hub ",
            "Name": "",
            "Post Code": "4000",
            "Lng": "153.02",
            "Unrelated": "ignored",
            "": "blank heading",
        }
    )

    assert resolved == {"name": "Youth Hub", "postcode": "4000", "longitude": "153.02"}


def test_translate_row_derives_stable_ids_without_an_id_column() -> None:
    extracted_at = datetime(2025, 3, 1, tzinfo=UTC)
    row = {"Centre": "Cairns Youth Justice", "Address": "5 Grafton Street", "Postcode": "4870"}

    first = translate_row(row, dataset="youth_justice_service_centres", extracted_at=extracted_at)
    second = translate_row(
        {**row, "Centre": "CAIRNS YOUTH JUSTICE"},
        dataset="youth_justice_service_centres",
        extracted_at=extracted_at,
    )

    assert first.source_id == second.source_id
    assert first.source_id.startswith("youth_justice_service_centres:")
    assert first.fields["locations"] == [
        {
            "address": "5 Grafton Street",
            "city": None,
            "state": "QLD",
            "postcode": "4870",
            "latitude": None,
            "longitude": None,
        }
    ]
    assert first.fields["categories"] == ["youth_justice", "case_management"]


def test_translate_row_requires_a_name() -> None:
    with pytest.raises(ValidationError):
        translate_row(
            {"Suburb": "Ipswich"},
            dataset="community_services",
            extracted_at=datetime(2025, 3, 1, tzinfo=UTC),
        )


def test_row_schema_tolerates_junk_coordinates() -> None:
    row = QldServiceRow.model_validate(
        resolve_columns({"Service Name": "Brisbane Youth Hub", "Postcode": "4000", "Latitude": "N/A"})
    )

    assert row.name == "Brisbane Youth Hub"
    assert row.latitude is None
    assert QldServiceRow.model_validate({"name": "Hub", "longitude": "153.02"}).longitude == 153.02
    assert QldServiceRow.model_validate({"name": "Hub", "latitude": "nan"}).latitude is None
