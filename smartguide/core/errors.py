"""Error taxonomy for the sync core.

None of these are fatal. Transport errors are recovered by reconnecting,
decode errors drop a single message, geocode errors are cached as an
unavailable address and stale alerts are ignored.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for sync core errors."""


class TransportError(SyncError):
    """Raised when connecting, sending or receiving fails."""


class DecodeError(SyncError):
    """Raised when an inbound frame cannot be decoded."""

    def __init__(self, message: str, raw: str | bytes | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class GeocodeError(SyncError):
    """Raised when a reverse geocoding lookup fails."""


class StaleAlertError(SyncError):
    """An alert whose raised_at is not newer than the last accepted one."""

    def __init__(self, raised_at: float, last_raised_at: float) -> None:
        super().__init__(f"stale alert raised_at={raised_at} (last accepted {last_raised_at})")
        self.raised_at = raised_at
        self.last_raised_at = last_raised_at
