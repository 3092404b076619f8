"""Reconnecting WebSocket session shared by the tracker and observer clients."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Awaitable, Callable, Protocol

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import WebSocketException

from smartguide.core.errors import DecodeError, TransportError
from smartguide.core.sync_policies import (
    RECONNECT_BACKOFF_SECONDS,
    SEND_RETRY_ATTEMPTS,
    SEND_RETRY_DELAY_SECONDS,
)
from smartguide.schemas.messages import Message
from smartguide.schemas.session import ConnectionStatus, Role, SessionState
from smartguide.services import codec

logger = logging.getLogger(__name__)

# Anything that means "the link is gone" rather than a programming error
LINK_ERRORS: tuple[type[BaseException], ...] = (WebSocketException, OSError, asyncio.TimeoutError)


class Connection(Protocol):
    async def send(self, message: str) -> None: ...

    async def recv(self) -> str | bytes: ...

    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[Connection]]


async def websocket_connector(endpoint: str) -> Connection:
    return await ws_connect(endpoint, open_timeout=10)


def build_ws_endpoint(relay_url: str, client_id: str) -> str:
    return f"{relay_url.rstrip('/')}/ws/{client_id}"


class SessionTransport:
    """One logical duplex channel over an unreliable link.

    A dropped link sets the state to DISCONNECTED with last_error and arms
    exactly one reconnect after a fixed backoff. disconnect() cancels that
    timer, so a closed session never comes back on its own.
    """

    def __init__(
        self,
        role: Role,
        connector: Connector = websocket_connector,
        reconnect_backoff_seconds: float = RECONNECT_BACKOFF_SECONDS,
        send_retry_attempts: int = SEND_RETRY_ATTEMPTS,
        send_retry_delay_seconds: float = SEND_RETRY_DELAY_SECONDS,
        on_error: Callable[[DecodeError], None] | None = None,
        on_state_change: Callable[[SessionState], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._connector = connector
        self._backoff = reconnect_backoff_seconds
        self._send_retry_attempts = max(0, send_retry_attempts)
        self._send_retry_delay = send_retry_delay_seconds
        self._on_error = on_error
        self._on_state_change = on_state_change
        self._sleep = sleep

        self._state = SessionState(role=role)
        self._endpoint: str | None = None
        self._conn: Connection | None = None
        self._receive_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._inbox: asyncio.Queue[Message | None] = asyncio.Queue()
        self._inbox_ended = False
        self._closed = True
        self.reconnect_attempts = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state.connection_status is ConnectionStatus.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def set_error_handler(self, handler: Callable[[DecodeError], None] | None) -> None:
        self._on_error = handler

    async def connect(self, endpoint: str) -> None:
        """Open the session. A failed first attempt is retried like a dropped link.

        Calling it on a live session replaces the current socket.
        """
        self._endpoint = endpoint
        self._closed = False
        self._cancel_reconnect()
        await self._release_link()
        if self._inbox_ended:
            self._inbox = asyncio.Queue()
            self._inbox_ended = False
        await self._open()

    async def disconnect(self) -> None:
        """Tear the session down for good and end messages()."""
        self._closed = True
        self._cancel_reconnect()
        await self._release_link()

        self._set_state(ConnectionStatus.DISCONNECTED)
        if not self._inbox_ended:
            self._inbox_ended = True
            self._inbox.put_nowait(None)
        logger.info("%s session closed", self._state.role.value)

    async def send(self, message: Message) -> None:
        """Send one message, retrying briefly while the link is down.

        Raises TransportError once the bounded retries are used up.
        """
        frame = codec.encode(message)
        last_error: BaseException | None = None

        for attempt in range(self._send_retry_attempts + 1):
            conn = self._conn
            if conn is not None and self.is_connected:
                try:
                    await conn.send(frame)
                    return
                except LINK_ERRORS as exc:
                    last_error = exc
            else:
                last_error = TransportError("link is down")

            if self._closed:
                break
            if attempt < self._send_retry_attempts:
                await self._sleep(self._send_retry_delay)

        raise TransportError(f"Sending {message.type} failed: {last_error}")

    async def messages(self) -> AsyncIterator[Message]:
        """Decoded inbound messages across reconnects, until disconnect()."""
        while True:
            item = await self._inbox.get()
            if item is None:
                return
            yield item

    # ---------- internals ----------

    async def _open(self) -> None:
        self._set_state(ConnectionStatus.CONNECTING)
        try:
            conn = await self._connector(self._endpoint)
        except LINK_ERRORS as exc:
            self._handle_failure(f"connect failed: {exc}")
            return

        if self._closed:
            # disconnect() won the race with the handshake
            await self._close_quietly(conn)
            return

        self._conn = conn
        self._set_state(ConnectionStatus.CONNECTED)
        self._receive_task = asyncio.create_task(
            self._receive_loop(conn), name=f"{self._state.role.value.lower()}_receive_loop"
        )

    async def _receive_loop(self, conn: Connection) -> None:
        try:
            while True:
                frame = await conn.recv()
                try:
                    message = codec.decode(frame)
                except DecodeError as exc:
                    logger.warning("Dropping malformed frame: %s", exc)
                    if self._on_error is not None:
                        self._on_error(exc)
                    continue
                if message is not None:
                    self._inbox.put_nowait(message)
        except LINK_ERRORS as exc:
            await self._close_quietly(conn)
            if self._conn is not conn:
                logger.debug("Ignoring failure of a replaced socket: %r", exc)
                return
            self._conn = None
            self._handle_failure(f"receive failed: {exc!r}")

    def _handle_failure(self, reason: str) -> None:
        if self._closed:
            return
        logger.warning(
            "%s session dropped: %s; reconnecting in %.1fs", self._state.role.value, reason, self._backoff
        )
        self._set_state(ConnectionStatus.DISCONNECTED, last_error=reason)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        pending = self._reconnect_task
        if pending is not None and not pending.done() and pending is not asyncio.current_task():
            return
        self._reconnect_task = asyncio.create_task(self._reconnect_after_backoff(), name="session_reconnect")

    async def _reconnect_after_backoff(self) -> None:
        await self._sleep(self._backoff)
        if self._closed:
            return
        self.reconnect_attempts += 1
        logger.info("%s reconnect attempt %s", self._state.role.value, self.reconnect_attempts)
        await self._open()

    async def _release_link(self) -> None:
        task, self._receive_task = self._receive_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        conn, self._conn = self._conn, None
        if conn is not None:
            await self._close_quietly(conn)

    def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _set_state(self, status: ConnectionStatus, last_error: str | None = None) -> None:
        self._state = SessionState(role=self._state.role, connection_status=status, last_error=last_error)
        if self._on_state_change is not None:
            self._on_state_change(self._state)

    async def _close_quietly(self, conn: Connection) -> None:
        try:
            await conn.close()
        except LINK_ERRORS as exc:
            logger.debug("Ignoring error while closing socket: %s", exc)
