from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003
from datetime import UTC, datetime

import httpx
import pytest
from pydantic import ValidationError

from servicefinder.adapters.acnc import AcncAdapter, AcncCharity, translate_charity
from servicefinder.config.http_resilience import ResilienceConfig
from servicefinder.config.sources import AcncConfig
from servicefinder.domain.model import ExtractionErrorKind
from servicefinder.domain.ports.fetching import (
    ExtractionOptions,
    ExtractionResult,
    FatalExtractionError,
    TransientExtractionError,
)
from tests.support.http import make_client_factory

BASE_URL = "https://data.example/api/3/action/"


def _charity(index: int, **overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "_id": index,
        "ABN": 11111111110 + index,
        "Charity_Legal_Name": f"Queensland Youth Support {index} Ltd",
        "Address_Line_1": f"{index} Ann Street",
        "Town_City": "Brisbane",
        "State": "QLD",
        "Postcode": 4000,
        "Charity_Website": f"https://qys{index}.org.au",
        "Youth": "Y",
        "Children": "N",
        "Aboriginal_or_TSI": "",
    }
    row.update(overrides)
    return row


def _package_payload() -> dict[str, object]:
    return {
        "success": True,
        "result": {
            "id": "pkg-1",
            "name": "acnc-register",
            "resources": [
                {"id": "res-csv", "format": "CSV", "url": "https://files.example/acnc.csv"},
                {"id": "res-1", "format": "CSV", "datastore_active": True},
            ],
        },
    }


def _adapter(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    page_size: int = 2,
    resource_id: str | None = None,
) -> AcncAdapter:
    return AcncAdapter(
        config=AcncConfig(
            resilience=ResilienceConfig(name="acnc", base_url=BASE_URL, cache=None),
            resource_id=resource_id,
            page_size=page_size,
        ),
        client_factory=make_client_factory(handler),
    )


class _Register:
    """Serves ``package_show`` and offset-paged ``datastore_search`` responses."""

    def __init__(
        self, rows: list[dict[str, object]], *, failing_offsets: set[int] | None = None
    ) -> None:
        self.rows = rows
        self.failing_offsets = failing_offsets or set()
        self.searches: list[httpx.QueryParams] = []
        self.package_calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("package_show"):
            self.package_calls += 1
            assert request.url.params["id"] == "acnc-register"
            return httpx.Response(200, json=_package_payload())
        assert request.url.path.endswith("datastore_search")
        params = request.url.params
        self.searches.append(params)
        assert params["resource_id"] == "res-1"
        offset = int(params["offset"])
        if offset in self.failing_offsets:
            return httpx.Response(500, json={"success": False})
        limit = int(params["limit"])
        return httpx.Response(
            200,
            json={
                "success": True,
                "result": {"records": self.rows[offset : offset + limit], "total": len(self.rows)},
            },
        )


def _extract(adapter: AcncAdapter, options: ExtractionOptions | None = None) -> ExtractionResult:
    async def _run() -> ExtractionResult:
        try:
            return await adapter.extract(options or ExtractionOptions())
        finally:
            await adapter.aclose()

    return asyncio.run(_run())


def test_adapter_pages_through_the_register() -> None:
    register = _Register([_charity(index) for index in range(1, 6)])

    result = _extract(_adapter(register))

    records = list(result.records)
    assert [record.source_id for record in records] == [
        "11111111111",
        "11111111112",
        "11111111113",
        "11111111114",
        "11111111115",
    ]
    assert [params["offset"] for params in register.searches] == ["0", "2", "4"]
    assert register.package_calls == 1
    assert result.errors == []
    assert result.stats.estimated_total == 5
    assert result.stats.fetched == 5
    assert records[0].source == "acnc"
    assert records[0].source_url == f"{BASE_URL}datastore_search?resource_id=res-1"


def test_configured_resource_id_skips_package_lookup() -> None:
    register = _Register([_charity(1)])

    result = _extract(_adapter(register, resource_id="res-1"))

    assert register.package_calls == 0
    assert len(list(result.records)) == 1


def test_failed_page_is_reported_and_paging_continues() -> None:
    register = _Register([_charity(index) for index in range(1, 6)], failing_offsets={2})

    result = _extract(_adapter(register))

    assert [record.source_id for record in result.records] == [
        "11111111111",
        "11111111112",
        "11111111115",
    ]
    (error,) = result.errors
    assert error.kind is ExtractionErrorKind.UNAVAILABLE
    assert error.context == "acnc offset=2"


def test_limit_caps_page_sizes_and_records() -> None:
    register = _Register([_charity(index) for index in range(1, 6)])

    result = _extract(_adapter(register), ExtractionOptions(limit=3))

    assert len(list(result.records)) == 3
    assert [params["limit"] for params in register.searches] == ["2", "1"]


def test_youth_filter_is_sent_as_datastore_filter() -> None:
    register = _Register([_charity(1)])

    _extract(_adapter(register), ExtractionOptions(filters={"youth_only": True}))

    (params,) = register.searches
    assert json.loads(params["filters"]) == {"Youth": "Y"}


def test_invalid_rows_are_reported_without_failing_the_run() -> None:
    register = _Register([_charity(1), _charity(2, Charity_Legal_Name=None), _charity(3)])

    result = _extract(_adapter(register, page_size=10))

    assert len(list(result.records)) == 2
    (error,) = result.errors
    assert error.kind is ExtractionErrorKind.INVALID_RECORD
    assert error.context == "acnc row 2"


def test_unreachable_register_is_transient() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(TransientExtractionError, match="temporarily unavailable"):
        _extract(_adapter(handler))


def test_ckan_error_without_data_is_fatal() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"success": False, "error": {"message": "Not found", "__type": "Not Found"}}
        )

    with pytest.raises(FatalExtractionError, match="Not found"):
        _extract(_adapter(handler))


def test_package_without_datastore_resource_is_fatal() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"success": True, "result": {"id": "pkg-1", "name": "acnc-register"}},
        )

    with pytest.raises(FatalExtractionError, match="no datastore resource"):
        _extract(_adapter(handler))


def test_translate_charity_maps_register_columns() -> None:
    extracted_at = datetime(2025, 3, 1, tzinfo=UTC)
    row = _charity(
        1,
        Other_Organisation_Names="QYS",
        Address_Line_2=" Level 2 ",
        Children="yes",
        Aboriginal_or_TSI=True,
    )

    record = translate_charity(row, extracted_at=extracted_at, source_url="https://acnc.test")

    assert record.source_id == "11111111111"
    assert record.extracted_at == extracted_at
    assert record.fields["name"] == "Queensland Youth Support 1 Ltd"
    assert record.fields["description"] == "Also known as QYS"
    assert record.fields["organization"] == {
        "name": "Queensland Youth Support 1 Ltd",
        "abn": "11111111111",
    }
    assert record.fields["locations"] == [
        {"address": "1 Ann Street, Level 2", "city": "Brisbane", "state": "QLD", "postcode": "4000"}
    ]
    assert record.fields["categories"] == [
        "charity",
        "youth_services",
        "children_services",
        "indigenous_services",
    ]
    assert record.fields["youth_specific"] is True
    assert record.fields["indigenous_specific"] is True


def test_charity_schema_requires_abn_and_name() -> None:
    with pytest.raises(ValidationError):
        AcncCharity.model_validate({"Charity_Legal_Name": "No ABN Ltd"})
    charity = AcncCharity.model_validate({"ABN": "1", "Charity_Legal_Name": "X", "Youth": None})
    assert charity.youth is False
    assert charity.street_address is None
