"""HTTP polling interface used when no relay session is available."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from smartguide.core.errors import TransportError
from smartguide.schemas.alert import AlertEvent
from smartguide.schemas.location import Coordinate, LocationSample

logger = logging.getLogger(__name__)


class RelayHttpClient:
    """Thin async client for the relay's REST endpoints.

    Every httpx failure is re-raised as TransportError so role clients have
    a single error type to report.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def latest_location(self) -> Coordinate | None:
        data = await self._get_json("/location/latest")
        if data is None:
            return None
        try:
            return Coordinate(latitude=data["latitude"], longitude=data["longitude"])
        except (KeyError, ValueError) as exc:
            raise TransportError(f"Malformed location response: {exc}") from exc

    async def latest_sos(self) -> AlertEvent | None:
        """Latest active alert, or None when the relay answers 404."""
        data = await self._get_json("/sos/latest")
        if data is None:
            return None
        try:
            return AlertEvent(
                coordinate=Coordinate(latitude=data["latitude"], longitude=data["longitude"]),
                address=data.get("address"),
                raised_at=data["timestamp"],
            )
        except (KeyError, ValueError) as exc:
            raise TransportError(f"Malformed SOS response: {exc}") from exc

    async def update_location(self, sample: LocationSample) -> None:
        await self._post(
            "/location/update",
            {
                "latitude": sample.coordinate.latitude,
                "longitude": sample.coordinate.longitude,
                "heading": sample.heading,
            },
        )

    async def raise_sos(self, coordinate: Coordinate) -> None:
        await self._post("/sos", {"latitude": coordinate.latitude, "longitude": coordinate.longitude})

    async def clear_sos(self) -> None:
        await self._post("/sos/clear", None)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str) -> dict[str, Any] | None:
        try:
            response = await self._client.get(path)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportError(f"GET {path} failed: {exc}") from exc

        if not isinstance(data, dict):
            raise TransportError(f"GET {path} returned {type(data).__name__}, expected object")
        return data

    async def _post(self, path: str, body: dict[str, Any] | None) -> None:
        try:
            response = await self._client.post(path, json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"POST {path} failed: {exc}") from exc
        logger.debug("POST %s -> %s", path, response.status_code)
