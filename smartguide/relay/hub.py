"""Relay fan-out rules shared by the WebSocket and HTTP routes."""

from __future__ import annotations

import logging

from smartguide.relay.state import RelayState, StoredAlert
from smartguide.relay.ws_manager import ConnectionManager
from smartguide.schemas.messages import (
    ClearSosMessage,
    FallAnalysisMessage,
    LocationMessage,
    LocationUpdateMessage,
    Message,
    NavigationInstructionMessage,
    NavigationSignalMessage,
    SosAlertMessage,
    SosClearedMessage,
    SosMessage,
)
from smartguide.services.codec import encode

logger = logging.getLogger(__name__)


def alert_message(alert: StoredAlert) -> SosAlertMessage:
    return SosAlertMessage(lat=alert.latitude, lng=alert.longitude, timestamp=alert.timestamp, address=alert.address)


async def publish_location(
    manager: ConnectionManager,
    state: RelayState,
    latitude: float,
    longitude: float,
    heading: float | None,
    sender: str | None = None,
) -> None:
    state.update_location(latitude, longitude, heading)
    await manager.broadcast(encode(LocationUpdateMessage(lat=latitude, lng=longitude)), exclude=sender)


async def publish_sos(manager: ConnectionManager, state: RelayState, latitude: float, longitude: float) -> StoredAlert:
    """Store the alert and send it to everyone, the sender included as acknowledgement."""
    alert = state.raise_alert(latitude, longitude)
    logger.info("SOS raised at %s,%s (timestamp=%s)", latitude, longitude, alert.timestamp)
    await manager.broadcast(encode(alert_message(alert)))
    return alert


async def publish_clear(manager: ConnectionManager, state: RelayState) -> None:
    if state.clear_alert():
        logger.info("SOS cleared")
    await manager.broadcast(encode(SosClearedMessage()))


async def handle_client_message(
    manager: ConnectionManager,
    state: RelayState,
    sender: str,
    message: Message,
) -> None:
    if isinstance(message, LocationMessage):
        state.update_location(message.lat, message.lng, message.heading)
        await manager.broadcast(encode(message), exclude=sender)
    elif isinstance(message, SosMessage):
        await publish_sos(manager, state, message.lat, message.lng)
    elif isinstance(message, ClearSosMessage):
        await publish_clear(manager, state)
    elif isinstance(message, (NavigationSignalMessage, NavigationInstructionMessage, FallAnalysisMessage)):
        await manager.broadcast(encode(message), exclude=sender)
    else:
        logger.debug("Ignoring relay-originated %s from client %s", message.type, sender)
