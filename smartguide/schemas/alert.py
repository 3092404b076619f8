"""SOS alert schemas."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict

from smartguide.schemas.location import Coordinate


class AlertStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CLEARED = "CLEARED"


class AlertEvent(BaseModel):
    """The single current SOS alert of a tracked user.

    raised_at is the relay's alert timestamp and doubles as the alert id:
    only a strictly greater value is a new alert.
    """

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    address: str | None = None
    raised_at: float
    status: AlertStatus = AlertStatus.ACTIVE
