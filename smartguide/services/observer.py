"""Observer role: a family member following the tracked user."""

from __future__ import annotations

import asyncio
import logging

from smartguide.core.errors import TransportError
from smartguide.core.sync_policies import SOS_ALERT_BODY, SOS_ALERT_TITLE, UNKNOWN_PLACE
from smartguide.core.transport import SessionTransport
from smartguide.schemas.alert import AlertEvent
from smartguide.schemas.location import Coordinate
from smartguide.schemas.messages import (
    ClearSosMessage,
    FallAnalysisMessage,
    LocationMessage,
    LocationUpdateMessage,
    Message,
    SosAlertMessage,
    SosClearedMessage,
)
from smartguide.services.geocoder import ThrottledGeocoder
from smartguide.services.http_fallback import RelayHttpClient
from smartguide.services.notifications import Notifier
from smartguide.services.role_client import NavigationHandler, RoleClient

logger = logging.getLogger(__name__)

STATUS_CLEAR_FAILED = "SOS clear failed"
STATUS_POLL_FAILED = "polling failed"


class ObserverClient(RoleClient):
    """Follows location broadcasts and surfaces each distinct SOS exactly once.

    Address resolution and the notification run in a side task per accepted
    alert so the receive loop keeps draining while the geocoder works. Every
    accepted alert is announced, even one superseded while its address was
    being resolved; only the current alert records its address. Clearing
    cancels pending announcements, and so does stop().
    """

    def __init__(
        self,
        transport: SessionTransport,
        geocoder: ThrottledGeocoder,
        notifier: Notifier,
        fallback: RelayHttpClient | None = None,
        on_navigation: NavigationHandler | None = None,
    ) -> None:
        super().__init__(transport, fallback=fallback, on_navigation=on_navigation)
        self._geocoder = geocoder
        self._notifier = notifier
        self._alert_tasks: set[asyncio.Task[None]] = set()
        self._closed = False
        self.target: Coordinate | None = None
        self.target_heading: float | None = None
        self.sos_address: str | None = None
        self.fall_analyses: list[FallAnalysisMessage] = []

    async def _dispatch(self, message: Message) -> None:
        if isinstance(message, LocationMessage):
            self.target = message.coordinate
            self.target_heading = message.heading
        elif isinstance(message, LocationUpdateMessage):
            self.target = message.coordinate
        elif isinstance(message, SosAlertMessage):
            event = AlertEvent(coordinate=message.coordinate, address=message.address, raised_at=message.timestamp)
            self._accept_alert(event)
        elif isinstance(message, SosClearedMessage):
            self._clear_local()
        elif isinstance(message, FallAnalysisMessage):
            logger.info("Fall analysis received (timestamp=%s)", message.timestamp)
            self.fall_analyses.append(message)
        else:
            await super()._dispatch(message)

    def _accept_alert(self, event: AlertEvent) -> bool:
        if self._closed or not self.alerts.raise_alert(event):
            return False
        self.target = event.coordinate
        self.sos_address = event.address
        task = asyncio.create_task(self._announce(event), name=f"sos_announce_{event.raised_at}")
        self._alert_tasks.add(task)
        task.add_done_callback(self._alert_tasks.discard)
        return True

    async def _announce(self, event: AlertEvent) -> None:
        address = event.address
        if not address:
            address = await self._geocoder.resolve(event.coordinate) or UNKNOWN_PLACE
            if self._closed:
                return
            if self.alerts.annotate(event.raised_at, address):
                self.sos_address = address
            else:
                logger.debug("Alert %s superseded, not recording its address", event.raised_at)

        self._notifier.notify(SOS_ALERT_TITLE, SOS_ALERT_BODY.format(address=address))

    def _cancel_announcements(self) -> None:
        for task in list(self._alert_tasks):
            task.cancel()

    def _clear_local(self) -> None:
        if self.alerts.clear():
            self.sos_address = None
            self._cancel_announcements()

    def clear_fall_analyses(self) -> None:
        self.fall_analyses.clear()

    async def clear_alert(self) -> bool:
        """User dismissed the alert: go idle now, then tell the relay."""
        self._clear_local()
        try:
            await self._deliver(ClearSosMessage(), fallback=lambda http: http.clear_sos())
        except TransportError as exc:
            self._record_transport_error(STATUS_CLEAR_FAILED, exc)
            return False
        self.status = None
        return True

    async def poll_fallback(self) -> bool:
        """One HTTP polling round for when no relay session is available."""
        if self._fallback is None:
            return False
        try:
            coordinate = await self._fallback.latest_location()
            alert = await self._fallback.latest_sos()
        except TransportError as exc:
            self._record_transport_error(STATUS_POLL_FAILED, exc)
            return False

        if coordinate is not None:
            self.target = coordinate
        if alert is None:
            self._clear_local()
        else:
            self._accept_alert(alert)
        self.status = None
        return True

    async def drain(self) -> None:
        """Wait for pending alert announcements."""
        while self._alert_tasks:
            await asyncio.wait(list(self._alert_tasks))

    async def stop(self) -> None:
        self._closed = True
        self._cancel_announcements()
        await asyncio.gather(*list(self._alert_tasks), return_exceptions=True)
        self._alert_tasks.clear()
