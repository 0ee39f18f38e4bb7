"""
tests/test_geocode_service.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Nominatim reverse call (mocked with *pytest-httpx*) and the place-name
composition rule.
"""

from __future__ import annotations

import httpx
import pytest

from panoloc.geo import Coordinate
from panoloc.geocode_service import (
    GeocodeError,
    compose_place_name,
    is_placeholder,
    reverse_geocode,
)

PARIS = Coordinate(48.8566, 2.3522)


class TestComposePlaceName:
    def test_country_and_city(self):
        assert compose_place_name({"address": {"country": "Italy", "city": "Rome"}}) == "Italy, Rome"

    def test_country_only(self):
        assert compose_place_name({"address": {"country": "Italy"}}) == "Italy"

    @pytest.mark.parametrize(
        "address,expected",
        [
            ({"country": "France", "town": "Chamonix"}, "France, Chamonix"),
            ({"country": "Wales", "village": "Llanfair"}, "Wales, Llanfair"),
            # city wins over town and village
            ({"country": "X", "village": "V", "town": "T", "city": "C"}, "X, C"),
            # road/state/region are not part of the short name
            ({"country": "Japan", "state": "Tokyo", "road": "Chuo Dori"}, "Japan"),
        ],
    )
    def test_locality_priority(self, address: dict, expected: str):
        assert compose_place_name({"address": address}) == expected

    def test_locality_without_country(self):
        assert compose_place_name({"address": {"town": "Nowhere"}}) == "Nowhere"

    def test_falls_back_to_display_name_without_address(self):
        payload = {"display_name": "Atlantic Ocean"}
        assert compose_place_name(payload) == "Atlantic Ocean"

    def test_falls_back_to_display_name_when_address_is_thin(self):
        payload = {"display_name": "Somewhere", "address": {"road": "A1"}}
        assert compose_place_name(payload) == "Somewhere"

    @pytest.mark.parametrize(
        "payload",
        [{}, {"address": {}}, {"address": None}, {"error": "Unable to geocode"}],
    )
    def test_empty_when_nothing_usable(self, payload: dict):
        assert compose_place_name(payload) == ""


@pytest.mark.parametrize(
    "name,expected",
    [
        ("", True),
        ("Unknown", True),
        ("no details found", True),
        ("  No details found ", True),
        ("France, Paris", False),
    ],
)
def test_is_placeholder(name: str, expected: bool):
    assert is_placeholder(name) is expected


class TestReverseGeocode:
    @pytest.mark.asyncio
    async def test_success_returns_payload_and_sends_params(self, httpx_mock):
        httpx_mock.add_response(json={"address": {"country": "France", "city": "Paris"}})

        async with httpx.AsyncClient() as client:
            data = await reverse_geocode(client, PARIS, url="https://geo.test/reverse")

        assert data["address"]["city"] == "Paris"
        request = httpx_mock.get_request()
        assert request.method == "GET"
        assert request.url.host == "geo.test"
        params = request.url.params
        assert params["lat"] == "48.8566"
        assert params["lon"] == "2.3522"
        assert params["zoom"] == "18"
        assert params["addressdetails"] == "1"
        assert params["format"] == "json"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 500, 503])
    async def test_http_error_raises(self, httpx_mock, status: int):
        httpx_mock.add_response(status_code=status, json={"error": "busy"})

        async with httpx.AsyncClient() as client:
            with pytest.raises(GeocodeError) as info:
                await reverse_geocode(client, PARIS)

        assert info.value.status_code == status

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [httpx.ConnectError("connection refused"), httpx.ReadTimeout("timeout")],
    )
    async def test_transport_error_raises(self, httpx_mock, exc: Exception):
        httpx_mock.add_exception(exc)

        async with httpx.AsyncClient() as client:
            with pytest.raises(GeocodeError) as info:
                await reverse_geocode(client, PARIS)

        assert info.value.status_code is None
        assert isinstance(info.value.__cause__, httpx.HTTPError)

    @pytest.mark.asyncio
    async def test_non_json_body_is_thin_answer(self, httpx_mock):
        httpx_mock.add_response(text="<html>maintenance</html>")

        async with httpx.AsyncClient() as client:
            assert await reverse_geocode(client, PARIS) == {}

    @pytest.mark.asyncio
    async def test_non_object_json_is_thin_answer(self, httpx_mock):
        httpx_mock.add_response(json=["not", "an", "object"])

        async with httpx.AsyncClient() as client:
            assert await reverse_geocode(client, PARIS) == {}
