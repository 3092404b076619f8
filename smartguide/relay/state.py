"""In-memory relay state: latest location and latest alert."""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass(frozen=True)
class StoredLocation:
    latitude: float
    longitude: float
    heading: float | None = None


@dataclass(frozen=True)
class StoredAlert:
    latitude: float
    longitude: float
    timestamp: float
    address: str | None = None


class RelayState:
    """Latest values only; nothing outlives the process."""

    def __init__(self) -> None:
        self.latest_location: StoredLocation | None = None
        self.latest_alert: StoredAlert | None = None
        self._last_timestamp = 0.0

    def update_location(self, latitude: float, longitude: float, heading: float | None = None) -> StoredLocation:
        self.latest_location = StoredLocation(latitude, longitude, heading)
        return self.latest_location

    def raise_alert(self, latitude: float, longitude: float, address: str | None = None) -> StoredAlert:
        """Store a new alert stamped with a strictly increasing millisecond timestamp."""
        now_ms = float(int(time.time() * 1000))
        self._last_timestamp = max(now_ms, self._last_timestamp + 1)
        self.latest_alert = StoredAlert(latitude, longitude, self._last_timestamp, address)
        return self.latest_alert

    def clear_alert(self) -> bool:
        had_alert = self.latest_alert is not None
        self.latest_alert = None
        return had_alert

    def reset(self) -> None:
        self.latest_location = None
        self.latest_alert = None


relay_state = RelayState()
