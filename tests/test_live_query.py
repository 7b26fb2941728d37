"""Unit tests for LiveQuery change-stream subscriptions."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from social.services.realtime.live_query import LiveQuery


class FakeChangeStream:
    """Stands in for motor's change stream: try_next() returns None when idle."""

    def __init__(self, changes):
        self._changes = list(changes)
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True
        return False

    async def try_next(self):
        if self._changes:
            return self._changes.pop(0)
        return None


@pytest.fixture
def watched_collection():
    collection = MagicMock()
    collection.name = "conversations"
    return collection


class TestLiveQuery:
    @pytest.mark.asyncio
    async def test_initial_snapshot_then_one_per_change(self, watched_collection):
        stream = FakeChangeStream([None, {"operationType": "update"}, {"operationType": "insert"}])
        watched_collection.watch.return_value = stream
        fetch = AsyncMock(side_effect=[["first"], ["first", "second"], ["first", "second", "third"]])
        live = LiveQuery(watched_collection, [{"$match": {}}], fetch)

        snapshots = []
        async for snapshot in live:
            snapshots.append(snapshot)
            if len(snapshots) == 3:
                live.cancel()

        assert snapshots == [["first"], ["first", "second"], ["first", "second", "third"]]
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_opens_stream_with_full_documents(self, watched_collection):
        watched_collection.watch.return_value = FakeChangeStream([])
        pipeline = [{"$match": {"fullDocument.participants": "alice"}}]
        live = LiveQuery(watched_collection, pipeline, AsyncMock(return_value=[]), max_await_time_ms=250)

        async for _ in live:
            live.cancel()

        args, kwargs = watched_collection.watch.call_args
        assert args == (pipeline,)
        assert kwargs == {"full_document": "updateLookup", "max_await_time_ms": 250}

    @pytest.mark.asyncio
    async def test_cancel_stops_updates(self, watched_collection):
        stream = FakeChangeStream([{"operationType": "update"}] * 5)
        watched_collection.watch.return_value = stream
        fetch = AsyncMock(return_value=["snapshot"])
        live = LiveQuery(watched_collection, [], fetch)

        async for _ in live:
            live.cancel()

        assert fetch.await_count == 1
        assert live.cancelled is True
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_cancelled_before_start_never_opens_stream(self, watched_collection):
        fetch = AsyncMock()
        live = LiveQuery(watched_collection, [], fetch)
        live.cancel()

        async for _ in live:
            pytest.fail("cancelled live query produced a snapshot")

        watched_collection.watch.assert_not_called()
        fetch.assert_not_called()
