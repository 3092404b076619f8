"""Tracker role client tests."""

import asyncio
import json

import httpx

from smartguide.core.sync_policies import ADDRESS_UNAVAILABLE, SOS_SENT_TITLE
from smartguide.core.transport import SessionTransport
from smartguide.schemas.location import Coordinate
from smartguide.schemas.session import Role
from smartguide.services.codec import decode
from smartguide.services.geocoder import ThrottledGeocoder
from smartguide.services.http_fallback import RelayHttpClient
from smartguide.services.location_source import StaticPositionSource
from smartguide.services.notifications import RecordingNotifier
from smartguide.services.tracker import (
    STATUS_DATA_UNAVAILABLE,
    STATUS_SOS_ACKNOWLEDGED,
    STATUS_SOS_CLEARED,
    STATUS_SOS_NO_LOCATION,
    STATUS_SOS_SENT,
    STATUS_UPLOADED,
    TrackerClient,
)
from tests.fakes import FakeClock, FakeConnection, FakeConnector, FakeLookup, ManualSleep, RecordingSleep, settle

TAICHUNG = Coordinate(latitude=24.15, longitude=120.67)
ENDPOINT = "ws://relay.test/ws/tracker-1"


async def _connected_tracker(positions, conn, **kwargs):
    transport = SessionTransport(Role.TRACKER, connector=FakeConnector([conn]), sleep=RecordingSleep())
    await transport.connect(ENDPOINT)
    notifier = RecordingNotifier()
    tracker = TrackerClient(transport, positions, notifier, **kwargs)
    return tracker, notifier


def test_location_upload_skipped_without_heading():
    async def scenario():
        conn = FakeConnection()
        tracker, _ = await _connected_tracker(StaticPositionSource(TAICHUNG), conn)
        sent = await tracker.send_location()
        await tracker.transport.disconnect()
        return sent, tracker, conn

    sent, tracker, conn = asyncio.run(scenario())
    assert sent is False
    assert tracker.status == STATUS_DATA_UNAVAILABLE
    assert conn.sent == []


def test_location_upload_sends_full_message():
    async def scenario():
        conn = FakeConnection()
        tracker, _ = await _connected_tracker(StaticPositionSource(TAICHUNG, heading=90.0), conn)
        sent = await tracker.send_location()
        await tracker.transport.disconnect()
        return sent, tracker, conn

    sent, tracker, conn = asyncio.run(scenario())
    assert sent is True
    assert tracker.status == STATUS_UPLOADED
    payload = conn.sent_payloads()[0]
    assert payload["type"] == "location"
    assert (payload["lat"], payload["lng"], payload["heading"]) == (24.15, 120.67, 90.0)
    assert payload["timestamp"] > 0


def test_heading_is_normalized():
    positions = StaticPositionSource(TAICHUNG, heading=-90.0)
    assert positions.latest().heading == 270.0
    positions.update_heading(360.0)
    assert positions.latest().heading == 0.0


def test_upload_failure_status_self_clears():
    async def scenario():
        conn = FakeConnection()
        tracker, _ = await _connected_tracker(
            StaticPositionSource(TAICHUNG, heading=10.0), conn
        )
        conn.fail_sends = True
        assert await tracker.send_location() is False
        failed_status = tracker.status
        conn.fail_sends = False
        assert await tracker.send_location() is True
        await tracker.transport.disconnect()
        return failed_status, tracker.status

    failed_status, status = asyncio.run(scenario())
    assert failed_status.startswith("upload failed")
    assert status == STATUS_UPLOADED


def test_sampling_loop_runs_on_interval():
    async def scenario():
        conn = FakeConnection()
        sleep = ManualSleep()
        transport = SessionTransport(Role.TRACKER, connector=FakeConnector([conn]))
        await transport.connect(ENDPOINT)
        tracker = TrackerClient(
            transport,
            StaticPositionSource(TAICHUNG, heading=0.0),
            RecordingNotifier(),
            sample_interval_seconds=5.0,
            sleep=sleep,
        )
        tracker.start()
        await settle()
        sleep.release_all()
        await settle()
        await tracker.stop()
        await transport.disconnect()
        return tracker, sleep

    tracker, sleep = asyncio.run(scenario())
    assert tracker.uploads == 2
    assert sleep.calls[:2] == [5.0, 5.0]


def test_raise_sos_without_location_does_not_send():
    async def scenario():
        conn = FakeConnection()
        tracker, notifier = await _connected_tracker(StaticPositionSource(), conn)
        ok = await tracker.raise_sos()
        await tracker.transport.disconnect()
        return ok, tracker, notifier, conn

    ok, tracker, notifier, conn = asyncio.run(scenario())
    assert ok is False
    assert tracker.status == STATUS_SOS_NO_LOCATION
    assert conn.sent == []
    assert notifier.sent == []


def test_raise_sos_is_optimistic_then_acknowledged():
    async def scenario():
        conn = FakeConnection()
        tracker, notifier = await _connected_tracker(StaticPositionSource(TAICHUNG), conn)
        ok = await tracker.raise_sos()
        optimistic = tracker.status
        await tracker.handle_message(
            decode('{"type":"sos_alert","lat":24.15,"lng":120.67,"timestamp":1000,"address":null}')
        )
        acknowledged = tracker.status
        await tracker.handle_message(decode('{"type":"sos_cleared"}'))
        await tracker.transport.disconnect()
        return ok, optimistic, acknowledged, tracker, notifier, conn

    ok, optimistic, acknowledged, tracker, notifier, conn = asyncio.run(scenario())
    assert ok is True
    assert conn.sent_payloads() == [{"type": "sos", "lat": 24.15, "lng": 120.67}]
    assert optimistic == STATUS_SOS_SENT
    assert acknowledged == STATUS_SOS_ACKNOWLEDGED
    assert tracker.status == STATUS_SOS_CLEARED
    assert not tracker.alerts.is_active
    assert [title for title, _ in notifier.sent] == [SOS_SENT_TITLE]


def test_raise_sos_without_session_reports_failure():
    async def scenario():
        transport = SessionTransport(Role.TRACKER, connector=FakeConnector([]), send_retry_attempts=0)
        tracker = TrackerClient(transport, StaticPositionSource(TAICHUNG), RecordingNotifier())
        return await tracker.raise_sos(), tracker

    ok, tracker = asyncio.run(scenario())
    assert ok is False
    assert tracker.status.startswith("SOS send failed")


def test_falls_back_to_http_when_session_is_down():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append((request.method, request.url.path, request.content))
        return httpx.Response(200, json={"status": "ok"})

    async def scenario():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://relay.test")
        fallback = RelayHttpClient("http://relay.test", client=client)
        transport = SessionTransport(Role.TRACKER, connector=FakeConnector([]))
        tracker = TrackerClient(
            transport, StaticPositionSource(TAICHUNG, heading=45.0), RecordingNotifier(), fallback=fallback
        )
        uploaded = await tracker.send_location()
        raised = await tracker.raise_sos()
        await fallback.aclose()
        return uploaded, raised

    uploaded, raised = asyncio.run(scenario())
    assert uploaded and raised
    assert [(m, p) for m, p, _ in requests] == [("POST", "/location/update"), ("POST", "/sos")]
    assert b'"heading":45.0' in requests[0][2].replace(b" ", b"")


def test_position_source_reports_latest_update():
    positions = StaticPositionSource()
    assert positions.latest() is None
    positions.update_location(TAICHUNG)
    positions.update_heading(180.0)
    sample = positions.latest()
    assert sample.coordinate == TAICHUNG
    assert sample.heading == 180.0


def test_tracker_can_clear_its_own_alert():
    async def scenario():
        conn = FakeConnection()
        tracker, _ = await _connected_tracker(StaticPositionSource(TAICHUNG), conn)
        await tracker.handle_message(decode('{"type":"sos_alert","lat":24.15,"lng":120.67,"timestamp":5}'))
        ok = await tracker.clear_sos()
        await tracker.handle_message(decode('{"type":"sos_alert","lat":24.15,"lng":120.67,"timestamp":5}'))
        await tracker.transport.disconnect()
        return ok, tracker, conn

    ok, tracker, conn = asyncio.run(scenario())
    assert ok is True
    assert conn.sent_payloads() == [{"type": "clear_sos"}]
    assert not tracker.alerts.is_active
    assert tracker.status == STATUS_SOS_CLEARED


class EchoingConnection(FakeConnection):
    """Relay stand-in whose sos_alert echo lands before send() returns."""

    async def send(self, frame: str) -> None:
        await super().send(frame)
        if json.loads(frame)["type"] == "sos":
            self.feed({"type": "sos_alert", "lat": 24.15, "lng": 120.67, "timestamp": 7})
            await settle()


def test_echo_during_send_counts_as_acknowledgement():
    async def scenario():
        conn = EchoingConnection()
        tracker, notifier = await _connected_tracker(StaticPositionSource(TAICHUNG), conn)
        runner = asyncio.create_task(tracker.run())
        ok = await tracker.raise_sos()
        await tracker.transport.disconnect()
        await runner
        return ok, tracker, notifier

    ok, tracker, notifier = asyncio.run(scenario())
    assert ok is True
    assert tracker.status == STATUS_SOS_ACKNOWLEDGED
    assert tracker.sos_pending is False
    assert tracker.alerts.current.raised_at == 7
    assert notifier.sent == [(SOS_SENT_TITLE, "Emergency request delivered")]


def test_failed_sos_does_not_stay_pending():
    async def scenario():
        conn = FakeConnection()
        tracker, _ = await _connected_tracker(StaticPositionSource(TAICHUNG), conn)
        conn.fail_sends = True
        ok = await tracker.raise_sos()
        await tracker.transport.disconnect()
        return ok, tracker

    ok, tracker = asyncio.run(scenario())
    assert ok is False
    assert tracker.sos_pending is False


def test_samples_refresh_current_address_through_throttle():
    async def scenario():
        lookup, clock = FakeLookup("Xitun District"), FakeClock()
        geocoder = ThrottledGeocoder(lookup, clock=clock)
        positions = StaticPositionSource(TAICHUNG, heading=90.0)
        tracker, _ = await _connected_tracker(positions, FakeConnection(), geocoder=geocoder)
        await tracker.send_location()
        await settle()
        first = tracker.current_address

        clock.advance(2)
        lookup.address = "Somewhere else"
        await tracker.send_location()
        await settle()
        await tracker.stop()
        await tracker.transport.disconnect()
        return first, tracker, lookup

    first, tracker, lookup = asyncio.run(scenario())
    assert first == "Xitun District"
    assert tracker.current_address == "Xitun District"
    assert len(lookup.calls) == 1


def test_address_refresh_survives_missing_heading_and_failed_lookup():
    async def scenario():
        geocoder = ThrottledGeocoder(FakeLookup(fail=True), clock=FakeClock())
        tracker, _ = await _connected_tracker(StaticPositionSource(TAICHUNG), FakeConnection(), geocoder=geocoder)
        sent = await tracker.send_location()
        await settle()
        await tracker.stop()
        await tracker.transport.disconnect()
        return sent, tracker

    sent, tracker = asyncio.run(scenario())
    assert sent is False
    assert tracker.current_address == ADDRESS_UNAVAILABLE
