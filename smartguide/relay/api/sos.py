"""SOS HTTP fallback API."""

from fastapi import APIRouter, HTTPException, status

from smartguide.relay.hub import publish_clear, publish_sos
from smartguide.relay.schemas import LatestSosResponse, SosCreate
from smartguide.relay.state import relay_state
from smartguide.relay.ws_manager import ws_manager

router = APIRouter(prefix="/sos", tags=["sos"])


@router.get("/latest", response_model=LatestSosResponse)
def latest_sos():
    """Latest active alert; 404 means none."""
    alert = relay_state.latest_alert
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active SOS")
    return LatestSosResponse(
        latitude=alert.latitude,
        longitude=alert.longitude,
        timestamp=alert.timestamp,
        address=alert.address,
    )


@router.post("", response_model=LatestSosResponse)
async def create_sos(data: SosCreate):
    """Raise an SOS and fan it out to every connected client."""
    alert = await publish_sos(ws_manager, relay_state, data.latitude, data.longitude)
    return LatestSosResponse(
        latitude=alert.latitude,
        longitude=alert.longitude,
        timestamp=alert.timestamp,
        address=alert.address,
    )


@router.post("/clear")
async def clear_sos():
    """Clear the active SOS for everyone."""
    await publish_clear(ws_manager, relay_state)
    return {"status": "ok"}
