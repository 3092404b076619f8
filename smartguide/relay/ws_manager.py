"""WebSocket connection manager for the development relay."""

import logging

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks active WebSocket connections keyed by client id."""

    def __init__(self) -> None:
        # client_id -> set of active websocket connections
        self._connections: dict[str, set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, client_id: str) -> None:
        await websocket.accept()
        if client_id not in self._connections:
            self._connections[client_id] = set()
        self._connections[client_id].add(websocket)
        logger.info("WS connected: client=%s (total=%s)", client_id, self.total_connections)

    def disconnect(self, websocket: WebSocket, client_id: str) -> None:
        conns = self._connections.get(client_id)
        if conns:
            conns.discard(websocket)
            if not conns:
                del self._connections[client_id]
        logger.info("WS disconnected: client=%s (total=%s)", client_id, self.total_connections)

    async def send_to_client(self, client_id: str, frame: str) -> None:
        """Send a frame to all connections of a client, dropping dead ones."""
        conns = self._connections.get(client_id, set())
        dead: list[WebSocket] = []
        for ws in list(conns):
            try:
                await ws.send_text(frame)
            except (RuntimeError, OSError, WebSocketDisconnect) as exc:
                logger.debug("Dropping dead connection for %s: %s", client_id, exc)
                dead.append(ws)
        for ws in dead:
            conns.discard(ws)

    async def broadcast(self, frame: str, exclude: str | None = None) -> None:
        """Fan a frame out to every client except exclude."""
        for client_id in list(self._connections):
            if client_id != exclude:
                await self.send_to_client(client_id, frame)

    @property
    def total_connections(self) -> int:
        return sum(len(c) for c in self._connections.values())


# Singleton instance used across the relay
ws_manager = ConnectionManager()
