"""Coordinate and location sample schemas."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class LocationSample(BaseModel):
    """One reading from the device positioning subsystem."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    coordinate: Coordinate
    heading: float | None = Field(default=None, ge=0, lt=360)  # None until a heading is known
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def normalize_heading(value: float | None) -> float | None:
    """Wrap a raw compass heading into [0, 360)."""
    if value is None:
        return None
    heading = value % 360.0
    # -1e-17 % 360 rounds to 360.0
    return 0.0 if heading >= 360.0 else heading
