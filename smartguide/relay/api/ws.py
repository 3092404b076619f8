"""Relay WebSocket endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from smartguide.core.errors import DecodeError
from smartguide.relay.hub import alert_message, handle_client_message
from smartguide.relay.state import relay_state
from smartguide.relay.ws_manager import ws_manager
from smartguide.services.codec import decode, encode

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/{client_id}")
async def websocket_endpoint(websocket: WebSocket, client_id: str):
    """
    One session per client id. Accepts text or binary JSON frames.
    A newly connected client is sent the latest active alert, if any.
    """
    await ws_manager.connect(websocket, client_id)
    try:
        if relay_state.latest_alert is not None:
            await websocket.send_text(encode(alert_message(relay_state.latest_alert)))

        while True:
            event = await websocket.receive()
            if event["type"] == "websocket.disconnect":
                break
            frame = event.get("text")
            if frame is None:
                frame = event.get("bytes") or b""
            # Heartbeat
            if frame == "ping":
                await websocket.send_text('{"type":"pong"}')
                continue
            try:
                message = decode(frame)
            except DecodeError as exc:
                logger.warning("Dropping malformed frame from %s: %s", client_id, exc)
                continue
            if message is not None:
                await handle_client_message(ws_manager, relay_state, client_id, message)
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(websocket, client_id)
