"""Tracker role: the visually-impaired user's device."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from smartguide.core.errors import TransportError
from smartguide.core.sync_policies import SAMPLE_INTERVAL_SECONDS, SOS_SENT_BODY, SOS_SENT_TITLE
from smartguide.core.transport import SessionTransport
from smartguide.schemas.alert import AlertEvent
from smartguide.schemas.messages import (
    ClearSosMessage,
    LocationMessage,
    Message,
    SosAlertMessage,
    SosClearedMessage,
    SosMessage,
)
from smartguide.schemas.location import Coordinate
from smartguide.services.geocoder import ThrottledGeocoder
from smartguide.services.http_fallback import RelayHttpClient
from smartguide.services.location_source import PositionSource
from smartguide.services.notifications import Notifier
from smartguide.services.role_client import NavigationHandler, RoleClient

logger = logging.getLogger(__name__)

STATUS_DATA_UNAVAILABLE = "location or heading unavailable"
STATUS_UPLOADED = "location uploaded"
STATUS_UPLOAD_FAILED = "upload failed"
STATUS_SOS_NO_LOCATION = "SOS not sent: location unavailable"
STATUS_SOS_SENT = "SOS sent"
STATUS_SOS_FAILED = "SOS send failed"
STATUS_SOS_ACKNOWLEDGED = "SOS acknowledged"
STATUS_SOS_ACTIVE = "SOS active"
STATUS_SOS_CLEARED = "SOS cleared"
STATUS_CLEAR_FAILED = "SOS clear failed"


class TrackerClient(RoleClient):
    """Pushes periodic location updates and originates SOS alerts.

    With a geocoder, each sample also refreshes current_address in the
    background; the geocoder throttle decides when a lookup actually runs.
    """

    def __init__(
        self,
        transport: SessionTransport,
        positions: PositionSource,
        notifier: Notifier,
        sample_interval_seconds: float = SAMPLE_INTERVAL_SECONDS,
        fallback: RelayHttpClient | None = None,
        on_navigation: NavigationHandler | None = None,
        geocoder: ThrottledGeocoder | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(transport, fallback=fallback, on_navigation=on_navigation)
        self._positions = positions
        self._notifier = notifier
        self._interval = sample_interval_seconds
        self._sleep = sleep
        self._geocoder = geocoder
        self._sampling_task: asyncio.Task[None] | None = None
        self._address_task: asyncio.Task[None] | None = None
        self.current_address: str | None = None
        self.sos_pending = False
        self.uploads = 0

    async def send_location(self) -> bool:
        """One sampling cycle. Skips (returns False) when data is incomplete."""
        sample = self._positions.latest()
        if sample is not None:
            self._refresh_address(sample.coordinate)
        if sample is None or sample.heading is None:
            self.status = STATUS_DATA_UNAVAILABLE
            logger.debug("Skipping location upload: %s", STATUS_DATA_UNAVAILABLE)
            return False

        message = LocationMessage(
            lat=sample.coordinate.latitude,
            lng=sample.coordinate.longitude,
            heading=sample.heading,
            timestamp=sample.captured_at.timestamp(),
        )
        try:
            await self._deliver(message, fallback=lambda http: http.update_location(sample))
        except TransportError as exc:
            self._record_transport_error(STATUS_UPLOAD_FAILED, exc)
            return False

        self.status = STATUS_UPLOADED
        self.uploads += 1
        return True

    def _refresh_address(self, coordinate: Coordinate) -> None:
        if self._geocoder is None:
            return
        if self._address_task is not None and not self._address_task.done():
            return
        self._address_task = asyncio.create_task(self._resolve_address(coordinate), name="tracker_address")

    async def _resolve_address(self, coordinate: Coordinate) -> None:
        address = await self._geocoder.resolve(coordinate)
        if address:
            self.current_address = address

    async def run_sampling_loop(self) -> None:
        while True:
            await self.send_location()
            await self._sleep(self._interval)

    def start(self) -> asyncio.Task[None]:
        if self._sampling_task is None or self._sampling_task.done():
            self._sampling_task = asyncio.create_task(self.run_sampling_loop(), name="tracker_sampling_loop")
        return self._sampling_task

    async def stop(self) -> None:
        for task in (self._sampling_task, self._address_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._sampling_task = self._address_task = None

    async def raise_sos(self) -> bool:
        """Send an SOS from the current position. Optimistic; the relay echo confirms it."""
        sample = self._positions.latest()
        if sample is None:
            self.status = STATUS_SOS_NO_LOCATION
            logger.warning(STATUS_SOS_NO_LOCATION)
            return False

        coordinate = sample.coordinate
        message = SosMessage(lat=coordinate.latitude, lng=coordinate.longitude)
        # the relay echo can arrive before the send returns
        self.sos_pending = True
        try:
            await self._deliver(message, fallback=lambda http: http.raise_sos(coordinate))
        except TransportError as exc:
            self.sos_pending = False
            self._record_transport_error(STATUS_SOS_FAILED, exc)
            return False

        if self.sos_pending:
            self.status = STATUS_SOS_SENT
        self._notifier.notify(SOS_SENT_TITLE, SOS_SENT_BODY)
        return True

    async def clear_sos(self) -> bool:
        self.alerts.clear()
        self.sos_pending = False
        try:
            await self._deliver(ClearSosMessage(), fallback=lambda http: http.clear_sos())
        except TransportError as exc:
            self._record_transport_error(STATUS_CLEAR_FAILED, exc)
            return False
        self.status = STATUS_SOS_CLEARED
        return True

    async def _dispatch(self, message: Message) -> None:
        if isinstance(message, SosAlertMessage):
            event = AlertEvent(coordinate=message.coordinate, address=message.address, raised_at=message.timestamp)
            if self.alerts.raise_alert(event):
                self.status = STATUS_SOS_ACKNOWLEDGED if self.sos_pending else STATUS_SOS_ACTIVE
                self.sos_pending = False
        elif isinstance(message, SosClearedMessage):
            self.sos_pending = False
            if self.alerts.clear():
                self.status = STATUS_SOS_CLEARED
        else:
            await super()._dispatch(message)
