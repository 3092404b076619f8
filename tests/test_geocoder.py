"""Throttled geocoder tests."""

import asyncio

import httpx

from smartguide.core.sync_policies import ADDRESS_UNAVAILABLE
from smartguide.schemas.location import Coordinate
from smartguide.services.geo_service import haversine_m
from smartguide.services.geocoder import NominatimLookup, ThrottledGeocoder, format_address
from tests.fakes import FakeClock, FakeLookup, settle

TAICHUNG = Coordinate(latitude=24.15, longitude=120.67)
# ~111 m north of TAICHUNG
NEARBY_FAR = Coordinate(latitude=24.151, longitude=120.67)
# ~11 m north of TAICHUNG
NEARBY_CLOSE = Coordinate(latitude=24.1501, longitude=120.67)


def test_haversine_one_millidegree_latitude():
    assert 110 < haversine_m(24.15, 120.67, 24.151, 120.67) < 112


def test_two_calls_two_seconds_apart_issue_one_lookup():
    async def scenario():
        clock, lookup = FakeClock(), FakeLookup("Taichung")
        geocoder = ThrottledGeocoder(lookup, clock=clock)
        first = await geocoder.resolve(TAICHUNG)
        clock.advance(2)
        second = await geocoder.resolve(TAICHUNG)
        return first, second, lookup

    first, second, lookup = asyncio.run(scenario())
    assert first == second == "Taichung"
    assert len(lookup.calls) == 1


def test_time_throttle_holds_even_when_far_away():
    async def scenario():
        clock, lookup = FakeClock(), FakeLookup("Taichung")
        geocoder = ThrottledGeocoder(lookup, clock=clock)
        await geocoder.resolve(TAICHUNG)
        clock.advance(5)
        return await geocoder.resolve(NEARBY_FAR), lookup

    address, lookup = asyncio.run(scenario())
    assert address == "Taichung"
    assert len(lookup.calls) == 1


def test_distance_throttle_after_interval():
    async def scenario():
        clock, lookup = FakeClock(), FakeLookup("Taichung")
        geocoder = ThrottledGeocoder(lookup, clock=clock)
        await geocoder.resolve(TAICHUNG)
        clock.advance(30)
        await geocoder.resolve(NEARBY_CLOSE)
        lookup.address = "North Taichung"
        clock.advance(30)
        return await geocoder.resolve(NEARBY_FAR), lookup

    address, lookup = asyncio.run(scenario())
    assert address == "North Taichung"
    assert len(lookup.calls) == 2


def test_failure_caches_unavailable_sentinel():
    async def scenario():
        geocoder = ThrottledGeocoder(FakeLookup(fail=True), clock=FakeClock())
        assert geocoder.cached_address is None
        address = await geocoder.resolve(TAICHUNG)
        return address, geocoder

    address, geocoder = asyncio.run(scenario())
    assert address == ADDRESS_UNAVAILABLE
    assert geocoder.cached_address == ADDRESS_UNAVAILABLE
    assert geocoder.cache.last_queried_location == TAICHUNG


def test_late_result_of_superseded_lookup_is_discarded():
    async def scenario():
        clock, lookup = FakeClock(), FakeLookup("Old place")
        lookup.gated = True
        geocoder = ThrottledGeocoder(lookup, clock=clock)

        older = asyncio.create_task(geocoder.resolve(TAICHUNG))
        await settle()
        clock.advance(15)
        lookup.address = "New place"
        newer = asyncio.create_task(geocoder.resolve(NEARBY_FAR))
        await settle()

        # newer lookup answers first, older one arrives late
        lookup.gates[1].set()
        newer_result = await newer
        lookup.gates[0].set()
        await older
        return newer_result, geocoder

    newer_result, geocoder = asyncio.run(scenario())
    assert newer_result == "New place"
    assert geocoder.cached_address == "New place"


def test_closed_geocoder_ignores_inflight_result():
    async def scenario():
        lookup = FakeLookup("Taichung")
        lookup.gated = True
        geocoder = ThrottledGeocoder(lookup, clock=FakeClock())
        pending = asyncio.create_task(geocoder.resolve(TAICHUNG))
        await settle()
        geocoder.close()
        lookup.gates[0].set()
        await pending
        return geocoder

    geocoder = asyncio.run(scenario())
    assert geocoder.cached_address is None


def test_format_address_orders_parts():
    address = {
        "country": "臺灣",
        "state": "臺中市",
        "city": "西屯區",
        "road": "臺灣大道三段",
        "house_number": "99",
        "postcode": "407",
    }
    assert format_address(address) == "臺灣 臺中市 西屯區 臺灣大道三段 99"


def test_nominatim_lookup_parses_response():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["lat"] == "24.15"
        assert request.headers["User-Agent"] == "smartguide-test"
        return httpx.Response(200, json={"address": {"country": "Taiwan", "city": "Taichung"}})

    async def scenario():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        lookup = NominatimLookup("https://geo.test/reverse", "smartguide-test", client=client)
        try:
            return await lookup(TAICHUNG)
        finally:
            await client.aclose()

    assert asyncio.run(scenario()) == "Taiwan Taichung"


def test_nominatim_error_becomes_unavailable_address():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="busy")

    async def scenario():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        lookup = NominatimLookup("https://geo.test/reverse", "smartguide-test", client=client)
        geocoder = ThrottledGeocoder(lookup, clock=FakeClock())
        try:
            return await geocoder.resolve(TAICHUNG)
        finally:
            await client.aclose()

    assert asyncio.run(scenario()) == ADDRESS_UNAVAILABLE


def test_unexpected_lookup_error_becomes_unavailable_address():
    async def broken_lookup(coordinate):
        raise RuntimeError("lookup backend crashed")

    async def scenario():
        geocoder = ThrottledGeocoder(broken_lookup, clock=FakeClock())
        return await geocoder.resolve(TAICHUNG), geocoder

    address, geocoder = asyncio.run(scenario())
    assert address == ADDRESS_UNAVAILABLE
    assert geocoder.cached_address == ADDRESS_UNAVAILABLE
