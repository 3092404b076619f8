"""Shared plumbing for the tracker and observer role clients."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from smartguide.core.errors import DecodeError, TransportError
from smartguide.core.transport import SessionTransport
from smartguide.schemas.messages import (
    Message,
    NavigationInstructionMessage,
    NavigationSignalMessage,
)
from smartguide.services.alert_state import AlertStateMachine
from smartguide.services.http_fallback import RelayHttpClient

logger = logging.getLogger(__name__)

NavigationHandler = Callable[[NavigationSignalMessage | NavigationInstructionMessage], None]


class RoleClient:
    """Owns an alert state machine and routes inbound messages.

    status is the user-visible line ("upload failed: ..."); it is replaced by
    the next outcome, so failures clear themselves on the next success.
    """

    def __init__(
        self,
        transport: SessionTransport,
        fallback: RelayHttpClient | None = None,
        on_navigation: NavigationHandler | None = None,
    ) -> None:
        self._transport = transport
        self._fallback = fallback
        self._on_navigation = on_navigation
        self.alerts = AlertStateMachine()
        self.status: str | None = None
        self.last_error: str | None = None
        transport.set_error_handler(self._record_decode_error)

    @property
    def transport(self) -> SessionTransport:
        return self._transport

    async def run(self) -> None:
        """Consume the session until the transport is torn down."""
        async for message in self._transport.messages():
            await self.handle_message(message)

    async def handle_message(self, message: Message) -> None:
        if isinstance(message, (NavigationSignalMessage, NavigationInstructionMessage)):
            if self._on_navigation is not None:
                self._on_navigation(message)
            return
        await self._dispatch(message)

    async def _dispatch(self, message: Message) -> None:
        logger.debug("Ignoring %s message", message.type)

    async def _deliver(
        self,
        message: Message,
        fallback: Callable[[RelayHttpClient], Awaitable[None]] | None = None,
    ) -> None:
        """Send over the session, or over HTTP when the session is down."""
        if not self._transport.is_connected and self._fallback is not None and fallback is not None:
            logger.info("Session down, sending %s over HTTP", message.type)
            await fallback(self._fallback)
            return
        await self._transport.send(message)

    def _record_decode_error(self, error: DecodeError) -> None:
        self.last_error = str(error)

    def _record_transport_error(self, status: str, error: TransportError) -> None:
        logger.warning("%s: %s", status, error)
        self.status = f"{status}: {error}"
        self.last_error = str(error)
