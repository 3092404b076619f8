"""Wire message schemas.

Every frame is a JSON object with a "type" field plus type-specific fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from smartguide.schemas.location import Coordinate


class _Envelope(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False, extra="ignore")


class _Positioned(_Envelope):
    # strict: JSON true or "24.1" is malformed, ints are still accepted
    lat: float = Field(ge=-90, le=90, strict=True)
    lng: float = Field(ge=-180, le=180, strict=True)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.lat, longitude=self.lng)


class LocationMessage(_Positioned):
    """Periodic position broadcast by the tracker."""

    type: Literal["location"] = "location"
    heading: float | None = Field(ge=0, lt=360, strict=True)
    timestamp: float = Field(strict=True)


class LocationUpdateMessage(_Positioned):
    """Relay -> observer position variant."""

    type: Literal["location_update"] = "location_update"


class SosMessage(_Positioned):
    """Tracker raises an SOS."""

    type: Literal["sos"] = "sos"


class SosAlertMessage(_Positioned):
    """Relay fan-out of the latest alert; timestamp is the alert id."""

    type: Literal["sos_alert"] = "sos_alert"
    timestamp: float = Field(strict=True)
    address: str | None = None


class ClearSosMessage(_Envelope):
    type: Literal["clear_sos"] = "clear_sos"


class SosClearedMessage(_Envelope):
    type: Literal["sos_cleared"] = "sos_cleared"


class NavigationSignalMessage(_Envelope):
    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal["navigation_signal"] = "navigation_signal"
    payload: str


class NavigationInstructionMessage(_Envelope):
    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal["navigation_instruction"] = "navigation_instruction"
    payload: str


class FallAnalysisMessage(_Envelope):
    """Fall detection report produced by the scene analysis service.

    timestamp is in epoch seconds; image_base64 may be empty when no frame
    was captured.
    """

    type: Literal["fall_analysis"] = "fall_analysis"
    timestamp: int = Field(strict=True)
    image_base64: str
    scene_description: str
    situation_analysis: str
    message_to_user: str

    @property
    def occurred_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


Message = Annotated[
    Union[
        LocationMessage,
        LocationUpdateMessage,
        SosMessage,
        SosAlertMessage,
        ClearSosMessage,
        SosClearedMessage,
        NavigationSignalMessage,
        NavigationInstructionMessage,
        FallAnalysisMessage,
    ],
    Field(discriminator="type"),
]

MESSAGE_TYPES: frozenset[str] = frozenset(
    {
        "location",
        "location_update",
        "sos",
        "sos_alert",
        "clear_sos",
        "sos_cleared",
        "navigation_signal",
        "navigation_instruction",
        "fall_analysis",
    }
)

NAVIGATION_TYPES: frozenset[str] = frozenset({"navigation_signal", "navigation_instruction"})
