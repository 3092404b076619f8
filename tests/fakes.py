"""Test doubles for the socket layer, sleeping and reverse geocoding."""

from __future__ import annotations

import asyncio
import json

from smartguide.core.errors import GeocodeError
from smartguide.schemas.location import Coordinate


class FakeConnection:
    """In-memory socket: frames fed in are returned by recv()."""

    def __init__(self) -> None:
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: list[str] = []
        self.closed = False
        self.fail_sends = False

    def feed(self, frame) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self.incoming.put_nowait(frame)

    def drop(self, exc: BaseException | None = None) -> None:
        self.incoming.put_nowait(exc or ConnectionResetError("connection reset by peer"))

    async def recv(self):
        item = await self.incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, frame: str) -> None:
        if self.closed or self.fail_sends:
            raise ConnectionError("socket closed")
        self.sent.append(frame)

    async def close(self) -> None:
        self.closed = True

    def sent_payloads(self) -> list[dict]:
        return [json.loads(f) for f in self.sent]


class FakeConnector:
    """Hands out prepared connections (or raises prepared errors) in order."""

    def __init__(self, results) -> None:
        self._results = list(results)
        self.calls = 0
        self.endpoints: list[str] = []

    async def __call__(self, endpoint: str):
        self.calls += 1
        self.endpoints.append(endpoint)
        if not self._results:
            raise ConnectionRefusedError("relay unreachable")
        result = self._results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class ManualSleep:
    """asyncio.sleep stand-in that only returns when released."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self._waiters: list[asyncio.Future] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        await fut

    @property
    def pending(self) -> int:
        return sum(1 for f in self._waiters if not f.done())

    def release_all(self) -> None:
        waiters, self._waiters = self._waiters, []
        for fut in waiters:
            if not fut.done():
                fut.set_result(None)


class RecordingSleep:
    """Returns immediately, remembering the requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await asyncio.sleep(0)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLookup:
    """Reverse lookup returning canned addresses, optionally gated."""

    def __init__(self, address: str | None = "Taichung", fail: bool = False) -> None:
        self.address = address
        self.fail = fail
        self.calls: list[Coordinate] = []
        self.gates: list[asyncio.Event] = []
        self.gated = False

    async def __call__(self, coordinate: Coordinate) -> str | None:
        self.calls.append(coordinate)
        address = self.address
        if self.gated:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        if self.fail:
            raise GeocodeError("geocoder offline")
        return address


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
