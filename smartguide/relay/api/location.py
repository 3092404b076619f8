"""Location HTTP fallback API."""

from fastapi import APIRouter, HTTPException, status

from smartguide.relay.hub import publish_location
from smartguide.relay.schemas import LatestLocationResponse, LocationUpdate
from smartguide.relay.state import relay_state
from smartguide.relay.ws_manager import ws_manager

router = APIRouter(prefix="/location", tags=["location"])


@router.get("/latest", response_model=LatestLocationResponse)
def latest_location():
    """Last reported tracker position."""
    loc = relay_state.latest_location
    if loc is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No location reported yet")
    return LatestLocationResponse(latitude=loc.latitude, longitude=loc.longitude, heading=loc.heading)


@router.post("/update")
async def update_location(data: LocationUpdate):
    """Tracker uploads its position without a session."""
    await publish_location(ws_manager, relay_state, data.latitude, data.longitude, data.heading)
    return {"status": "ok", "latitude": data.latitude, "longitude": data.longitude}
