"""Session state schemas."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict


class Role(str, enum.Enum):
    TRACKER = "TRACKER"
    OBSERVER = "OBSERVER"


class ConnectionStatus(str, enum.Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"


class SessionState(BaseModel):
    """Snapshot of a transport's connection. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    role: Role
    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    last_error: str | None = None
