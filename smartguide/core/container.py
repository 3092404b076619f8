"""Process-wide wiring.

Builds one instance of each shared service and hands them to the role
clients, instead of module-level singletons reached for from everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from smartguide.core.config import Settings
from smartguide.core.transport import Connector, SessionTransport, build_ws_endpoint, websocket_connector
from smartguide.schemas.session import Role
from smartguide.services.geocoder import NominatimLookup, ReverseLookup, ThrottledGeocoder
from smartguide.services.http_fallback import RelayHttpClient
from smartguide.services.location_source import PositionSource, StaticPositionSource
from smartguide.services.notifications import LoggingNotifier, Notifier
from smartguide.services.observer import ObserverClient
from smartguide.services.tracker import TrackerClient


@dataclass
class Services:
    settings: Settings
    notifier: Notifier
    positions: PositionSource
    fallback: RelayHttpClient
    lookup: ReverseLookup
    connector: Connector = websocket_connector
    _transports: dict[Role, SessionTransport] = field(default_factory=dict)

    @property
    def endpoint(self) -> str:
        return build_ws_endpoint(self.settings.relay_url, self.settings.client_id)

    def transport(self, role: Role) -> SessionTransport:
        """The single transport for role in this process."""
        if role not in self._transports:
            self._transports[role] = SessionTransport(
                role,
                connector=self.connector,
                reconnect_backoff_seconds=self.settings.reconnect_backoff_seconds,
                send_retry_attempts=self.settings.send_retry_attempts,
                send_retry_delay_seconds=self.settings.send_retry_delay_seconds,
            )
        return self._transports[role]

    def geocoder(self) -> ThrottledGeocoder:
        """A fresh throttled geocoder; each role keeps its own cache."""
        return ThrottledGeocoder(
            self.lookup,
            min_interval_seconds=self.settings.geocode_min_interval_seconds,
            min_distance_meters=self.settings.geocode_min_distance_meters,
        )

    def tracker(self) -> TrackerClient:
        return TrackerClient(
            self.transport(Role.TRACKER),
            self.positions,
            self.notifier,
            sample_interval_seconds=self.settings.sample_interval_seconds,
            fallback=self.fallback,
            geocoder=self.geocoder(),
        )

    def observer(self) -> ObserverClient:
        return ObserverClient(self.transport(Role.OBSERVER), self.geocoder(), self.notifier, fallback=self.fallback)

    async def aclose(self) -> None:
        await self.fallback.aclose()
        if isinstance(self.lookup, NominatimLookup):
            await self.lookup.aclose()


def build_services(
    settings: Settings,
    notifier: Notifier | None = None,
    positions: PositionSource | None = None,
    lookup: ReverseLookup | None = None,
    connector: Connector = websocket_connector,
) -> Services:
    return Services(
        settings=settings,
        notifier=notifier or LoggingNotifier(),
        positions=positions or StaticPositionSource(),
        fallback=RelayHttpClient(settings.http_base_url, timeout=settings.http_timeout_seconds),
        lookup=lookup
        or NominatimLookup(
            settings.geocoder_url,
            settings.geocoder_user_agent,
            language=settings.geocoder_language,
            timeout=settings.http_timeout_seconds,
        ),
        connector=connector,
    )
