"""SmartGuide development relay (FastAPI)."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from smartguide.core.config import settings
from smartguide.relay.api import health, location, sos, ws

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app.include_router(health.router)
app.include_router(location.router)
app.include_router(sos.router)
app.include_router(ws.router)
