"""Command line entry: python -m smartguide relay|tracker|observer."""

from __future__ import annotations

import argparse
import asyncio
import logging

from smartguide.core.config import Settings
from smartguide.core.container import build_services
from smartguide.schemas.location import Coordinate
from smartguide.services.location_source import StaticPositionSource

logger = logging.getLogger("smartguide")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="smartguide", description="SmartGuide location / SOS sync")
    sub = parser.add_subparsers(dest="command", required=True)

    relay = sub.add_parser("relay", help="Run the development relay")
    relay.add_argument("--host", default="127.0.0.1")
    relay.add_argument("--port", type=int, default=8000)

    tracker = sub.add_parser("tracker", help="Run a tracker from a fixed position")
    tracker.add_argument("--client-id", default=None)
    tracker.add_argument("--lat", type=float, required=True)
    tracker.add_argument("--lng", type=float, required=True)
    tracker.add_argument("--heading", type=float, default=None)
    tracker.add_argument("--sos", action="store_true", help="Raise an SOS after connecting")

    observer = sub.add_parser("observer", help="Run an observer that logs notifications")
    observer.add_argument("--client-id", default=None)
    return parser


async def run_tracker(args: argparse.Namespace, settings: Settings) -> None:
    positions = StaticPositionSource(Coordinate(latitude=args.lat, longitude=args.lng), heading=args.heading)
    services = build_services(settings, positions=positions)
    tracker = services.tracker()
    await tracker.transport.connect(services.endpoint)
    tracker.start()
    if args.sos:
        await tracker.raise_sos()
        logger.info("Tracker status: %s", tracker.status)
    try:
        await tracker.run()
    finally:
        await tracker.stop()
        await tracker.transport.disconnect()
        await services.aclose()


async def run_observer(settings: Settings) -> None:
    services = build_services(settings)
    observer = services.observer()
    await observer.transport.connect(services.endpoint)
    try:
        await observer.run()
    finally:
        await observer.stop()
        await observer.transport.disconnect()
        await services.aclose()


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    overrides = {}
    if getattr(args, "client_id", None):
        overrides["client_id"] = args.client_id
    settings = Settings(**overrides)

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if args.command == "relay":
        import uvicorn

        uvicorn.run("smartguide.relay.main:app", host=args.host, port=args.port)
    elif args.command == "tracker":
        asyncio.run(run_tracker(args, settings))
    else:
        asyncio.run(run_observer(settings))


if __name__ == "__main__":
    main()
