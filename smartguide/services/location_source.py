"""Device position source seen by the tracker."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from smartguide.schemas.location import Coordinate, LocationSample, normalize_heading


class PositionSource(Protocol):
    def latest(self) -> LocationSample | None:
        """Freshest sample, or None if the device has produced none yet."""
        ...


class StaticPositionSource:
    """Position source fed by the host (or fixed for command line runs).

    Coordinates and heading arrive separately, the way a device reports
    location and compass updates.
    """

    def __init__(self, coordinate: Coordinate | None = None, heading: float | None = None) -> None:
        self._coordinate = coordinate
        self._heading = normalize_heading(heading)
        self._captured_at = datetime.now(timezone.utc)

    def update_location(self, coordinate: Coordinate) -> None:
        self._coordinate = coordinate
        self._captured_at = datetime.now(timezone.utc)

    def update_heading(self, heading: float) -> None:
        self._heading = normalize_heading(heading)

    def latest(self) -> LocationSample | None:
        if self._coordinate is None:
            return None
        return LocationSample(coordinate=self._coordinate, heading=self._heading, captured_at=self._captured_at)
