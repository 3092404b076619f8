"""HTTP fallback schemas for the relay."""

from pydantic import BaseModel, Field


class LocationUpdate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    heading: float | None = Field(default=None, ge=0, lt=360)


class LatestLocationResponse(BaseModel):
    latitude: float
    longitude: float
    heading: float | None = None


class SosCreate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class LatestSosResponse(BaseModel):
    latitude: float
    longitude: float
    timestamp: float
    address: str | None = None
