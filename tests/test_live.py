"""
Tests for the server-sent event stream
"""

import asyncio
import json

from database.memory_store import MemoryDocumentStore
from server.routes.live import LIVE_COLLECTIONS, format_event, live_events


def parse(frame):
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


class TestFormatEvent:
    def test_frame_shape(self):
        frame = format_event("ideas", {"i1": {"text": "🔥 idea"}})
        assert parse(frame) == {"collection": "ideas", "data": {"i1": {"text": "🔥 idea"}}}

    def test_private_collections_are_not_streamed(self):
        assert "credentials" not in LIVE_COLLECTIONS
        assert "users" not in LIVE_COLLECTIONS
        assert "votes" not in LIVE_COLLECTIONS


class TestLiveEvents:
    def test_initial_snapshot_then_updates(self):
        async def scenario():
            store = MemoryDocumentStore({"polls": {"p1": {"id": "p1", "voteCount": 0}}})
            stream = live_events(store, "polls", "polls", keepalive_seconds=5)
            first = await stream.__anext__()
            await store.increment("polls/p1", {"voteCount": 1})
            second = await stream.__anext__()
            open_count = store.subscription_count()
            await stream.aclose()
            return first, second, open_count, store.subscription_count()

        first, second, open_count, closed_count = asyncio.run(scenario())
        assert parse(first)["data"]["p1"]["voteCount"] == 0
        assert parse(second)["data"]["p1"]["voteCount"] == 1
        assert open_count == 1
        assert closed_count == 0

    def test_keepalive_when_idle(self):
        async def scenario():
            store = MemoryDocumentStore()
            stream = live_events(store, "ideas", "ideas", keepalive_seconds=0.01)
            initial = await stream.__anext__()
            idle = await stream.__anext__()
            await stream.aclose()
            return initial, idle

        initial, idle = asyncio.run(scenario())
        assert parse(initial)["data"] is None
        assert idle == ": keepalive\n\n"

    def test_stops_when_client_disconnects(self):
        async def disconnected():
            return True

        async def scenario():
            store = MemoryDocumentStore()
            frames = [frame async for frame in live_events(store, "polls", "polls", disconnected)]
            return frames, store.subscription_count()

        frames, count = asyncio.run(scenario())
        assert frames == []
        assert count == 0

    def test_wyr_split_is_not_streamed(self):
        async def scenario():
            store = MemoryDocumentStore({
                "wyr_questions": {"q1": {"id": "q1", "optionA": "Fly", "optionB": "Swim", "votesA": 3, "votesB": 1}}
            })
            stream = live_events(store, "wyr_questions", "wyr_questions", keepalive_seconds=5)
            first = await stream.__anext__()
            await stream.aclose()
            return parse(first)["data"]["q1"]

        question = asyncio.run(scenario())
        assert question["optionA"] == "Fly"
        assert question["resultsHidden"] is True
        assert "votesA" not in question
