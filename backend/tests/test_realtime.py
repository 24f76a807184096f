# tests for the real-time relay — channel fan-out over websockets
# publish is fire-and-forget; dead subscribers are dropped

import asyncio
import pytest
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from campus_journal.main import app
from campus_journal.services.broadcast import COHORT_CHANNEL, MoodBroadcaster, get_broadcaster
from campus_journal.services.db import db


class FakeSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, message):
        self.sent.append(message)


class DeadSocket:
    async def send_json(self, message):
        raise RuntimeError("connection closed")


async def _drain():
    # let the scheduled sends run
    for _ in range(3):
        await asyncio.sleep(0)


class TestMoodBroadcaster:
    """in-process channel registry"""

    async def test_publish_to_subscribers(self):
        broadcaster = MoodBroadcaster()
        a, b = FakeSocket(), FakeSocket()
        broadcaster.subscribe(COHORT_CHANNEL, a)
        broadcaster.subscribe(COHORT_CHANNEL, b)

        broadcaster.publish(COHORT_CHANNEL, "anonymous-journal-update", {"mood": 6})
        await _drain()

        expected = {"event": "anonymous-journal-update", "data": {"mood": 6}}
        assert a.sent == [expected]
        assert b.sent == [expected]

    async def test_exclude_sender(self):
        broadcaster = MoodBroadcaster()
        sender, other = FakeSocket(), FakeSocket()
        broadcaster.subscribe("dorm-a", sender)
        broadcaster.subscribe("dorm-a", other)

        broadcaster.publish("dorm-a", "mood-broadcast", {"mood": 4}, exclude=sender)
        await _drain()

        assert sender.sent == []
        assert len(other.sent) == 1

    async def test_channels_are_separate(self):
        broadcaster = MoodBroadcaster()
        a, b = FakeSocket(), FakeSocket()
        broadcaster.subscribe("dorm-a", a)
        broadcaster.subscribe("dorm-b", b)

        broadcaster.publish("dorm-a", "mood-broadcast", {"mood": 4})
        await _drain()
        assert len(a.sent) == 1
        assert b.sent == []

    async def test_dead_subscriber_dropped(self):
        broadcaster = MoodBroadcaster()
        alive = FakeSocket()
        broadcaster.subscribe(COHORT_CHANNEL, alive)
        broadcaster.subscribe(COHORT_CHANNEL, DeadSocket())

        broadcaster.publish(COHORT_CHANNEL, "anonymous-journal-update", {"mood": 5})
        await _drain()

        assert len(alive.sent) == 1
        assert broadcaster.subscriber_count(COHORT_CHANNEL) == 1

    async def test_publish_without_subscribers(self):
        broadcaster = MoodBroadcaster()
        broadcaster.publish("empty", "mood-broadcast", {"mood": 5})
        assert broadcaster.subscriber_count("empty") == 0

    async def test_unsubscribe(self):
        broadcaster = MoodBroadcaster()
        socket = FakeSocket()
        broadcaster.subscribe("dorm-a", socket)
        broadcaster.unsubscribe("dorm-a", socket)
        broadcaster.unsubscribe("dorm-a", socket)
        assert broadcaster.subscriber_count("dorm-a") == 0


class TestRealtimeSocket:
    """websocket relay at /realtime/{channel}"""

    @pytest.fixture
    def ws_client(self, monkeypatch):
        monkeypatch.setattr(db, "connect", AsyncMock())
        monkeypatch.setattr(db, "ensure_indexes", AsyncMock())
        monkeypatch.setattr(db, "close", AsyncMock())
        with TestClient(app) as test_client:
            yield test_client

    def test_mood_update_relayed_to_others(self, ws_client):
        with ws_client.websocket_connect("/realtime/study-group") as sender:
            with ws_client.websocket_connect("/realtime/study-group") as listener:
                sender.send_json({"type": "mood-update", "mood": 7, "color": "green"})
                message = listener.receive_json()
                assert message == {"event": "mood-broadcast", "data": {"mood": 7, "color": "green"}}

    def test_journal_shared_relayed(self, ws_client):
        with ws_client.websocket_connect("/realtime/study-group") as sender:
            with ws_client.websocket_connect("/realtime/study-group") as listener:
                sender.send_json({"type": "journal-shared", "topic": "exams"})
                message = listener.receive_json()
                assert message["event"] == "journal-notification"
                assert message["data"] == {"topic": "exams"}

    def test_relay_uses_injected_broadcaster(self, ws_client):
        class TrackingBroadcaster(MoodBroadcaster):
            def __init__(self):
                super().__init__()
                self.joined = []

            def subscribe(self, channel, websocket):
                self.joined.append(channel)
                super().subscribe(channel, websocket)

        tracking = TrackingBroadcaster()
        app.dependency_overrides[get_broadcaster] = lambda: tracking
        try:
            with ws_client.websocket_connect("/realtime/study-group") as sender:
                with ws_client.websocket_connect("/realtime/study-group") as listener:
                    sender.send_json({"type": "mood-update", "mood": 3})
                    assert listener.receive_json() == {"event": "mood-broadcast", "data": {"mood": 3}}
            assert tracking.joined == ["study-group", "study-group"]
        finally:
            app.dependency_overrides.pop(get_broadcaster, None)
