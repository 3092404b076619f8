"""Throttled reverse geocoding (coordinate -> display address)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable

import httpx

from smartguide.core.errors import GeocodeError
from smartguide.core.sync_policies import (
    ADDRESS_UNAVAILABLE,
    GEOCODE_MIN_DISTANCE_METERS,
    GEOCODE_MIN_INTERVAL_SECONDS,
)
from smartguide.schemas.location import Coordinate
from smartguide.services.geo_service import distance_m

logger = logging.getLogger(__name__)

ReverseLookup = Callable[[Coordinate], Awaitable[str | None]]


@dataclass(frozen=True)
class GeocodeCache:
    """Single-slot cache. last_resolved_address is None only if never resolved."""

    last_queried_at: float | None = None
    last_queried_location: Coordinate | None = None
    last_resolved_address: str | None = None


class ThrottledGeocoder:
    """Rate-limits lookups by elapsed time and by distance moved.

    Each issued lookup gets a generation number; only the newest generation
    may write the cache, so a slow older lookup never overwrites a fresher
    address.
    """

    def __init__(
        self,
        lookup: ReverseLookup,
        min_interval_seconds: float = GEOCODE_MIN_INTERVAL_SECONDS,
        min_distance_meters: float = GEOCODE_MIN_DISTANCE_METERS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lookup = lookup
        self._min_interval = min_interval_seconds
        self._min_distance = min_distance_meters
        self._clock = clock
        self._cache = GeocodeCache()
        self._generation = 0
        self._closed = False
        self.lookup_count = 0

    @property
    def cache(self) -> GeocodeCache:
        return self._cache

    @property
    def cached_address(self) -> str | None:
        return self._cache.last_resolved_address

    def is_throttled(self, coordinate: Coordinate, now: float | None = None) -> bool:
        cache = self._cache
        if cache.last_queried_at is None or cache.last_queried_location is None:
            return False
        now = self._clock() if now is None else now
        if now - cache.last_queried_at < self._min_interval:
            return True
        return distance_m(cache.last_queried_location, coordinate) < self._min_distance

    async def resolve(self, coordinate: Coordinate) -> str | None:
        """Return an address for coordinate, looking it up only when allowed."""
        if self._closed:
            return self._cache.last_resolved_address

        now = self._clock()
        if self.is_throttled(coordinate, now):
            logger.debug("Geocode throttled for %s,%s", coordinate.latitude, coordinate.longitude)
            return self._cache.last_resolved_address

        self._generation += 1
        generation = self._generation
        self._cache = replace(self._cache, last_queried_at=now, last_queried_location=coordinate)
        self.lookup_count += 1

        try:
            address = await self._lookup(coordinate)
        except GeocodeError as exc:
            logger.warning("Reverse geocoding failed: %s", exc)
            address = None
        except Exception:
            # a failed lookup only costs the address
            logger.exception("Reverse lookup raised unexpectedly")
            address = None
        if not address:
            address = ADDRESS_UNAVAILABLE

        if self._closed or generation != self._generation:
            logger.debug("Discarding superseded geocode result (generation %s)", generation)
            return self._cache.last_resolved_address

        self._cache = replace(self._cache, last_resolved_address=address)
        return address

    def close(self) -> None:
        """Retire the geocoder; late lookup results become no-ops."""
        self._closed = True
        self._generation += 1


def format_address(address: dict[str, Any]) -> str:
    """Join Nominatim address parts from the widest to the most specific."""
    locality = address.get("city") or address.get("town") or address.get("village")
    district = address.get("suburb") or address.get("city_district")
    parts = [
        address.get("country"),
        address.get("state"),
        locality,
        district,
        address.get("road"),
        address.get("house_number"),
    ]
    return " ".join(str(p) for p in parts if p)


class NominatimLookup:
    """Reverse lookup against an OpenStreetMap Nominatim endpoint."""

    def __init__(
        self,
        url: str,
        user_agent: str,
        language: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._headers = {"User-Agent": user_agent}
        self._language = language
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __call__(self, coordinate: Coordinate) -> str | None:
        if self._client is None:
            self._client = httpx.AsyncClient()

        params: dict[str, Any] = {
            "format": "jsonv2",
            "lat": coordinate.latitude,
            "lon": coordinate.longitude,
        }
        if self._language:
            params["accept-language"] = self._language

        try:
            response = await self._client.get(self._url, params=params, headers=self._headers, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GeocodeError(f"Nominatim request failed: {exc}") from exc

        if not isinstance(data, dict) or "error" in data:
            raise GeocodeError(f"Nominatim returned no result: {data!r}")

        return format_address(data.get("address") or {}) or data.get("display_name")

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
