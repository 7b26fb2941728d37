"""
Live queries over MongoDB change streams.

A ``LiveQuery`` yields a fresh snapshot of some query result first, then a
new snapshot every time a matching change arrives, until ``cancel()`` is
called. The subscriber owns the handle and must cancel it; nothing keeps a
stream open on its behalf.

Example:
    live = conversation_service.watch_conversations(user_id)
    async for conversations in live:
        await websocket.send_json(conversations)
    ...
    live.cancel()
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection

logger = logging.getLogger(__name__)


class LiveQuery:
    """Async iterator of query snapshots driven by a change stream."""

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        pipeline: List[Dict[str, Any]],
        fetch: Callable[[], Awaitable[Any]],
        max_await_time_ms: int = 1000,
        name: Optional[str] = None,
    ):
        """
        Args:
            collection: Collection to watch
            pipeline: Change stream filter ($match stages on change events)
            fetch: Coroutine factory producing the current snapshot
            max_await_time_ms: Upper bound on how long cancel() takes to be noticed
            name: Label used in log lines
        """
        self._collection = collection
        self._pipeline = pipeline
        self._fetch = fetch
        self._max_await_time_ms = max_await_time_ms
        self._name = name or collection.name
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the subscription. The stream closes on its next poll."""
        if not self._cancelled:
            self._cancelled = True
            logger.debug(f"Live query {self._name} cancelled")

    def __aiter__(self):
        return self._snapshots()

    async def _snapshots(self):
        if self._cancelled:
            return

        # Open the stream before the first read so no change falls in between
        async with self._collection.watch(
            self._pipeline,
            full_document="updateLookup",
            max_await_time_ms=self._max_await_time_ms,
        ) as stream:
            logger.info(f"Live query {self._name} opened")
            yield await self._fetch()

            while not self._cancelled:
                change = await stream.try_next()
                if change is None or self._cancelled:
                    continue
                logger.debug(f"Live query {self._name} saw {change.get('operationType')}")
                yield await self._fetch()

        logger.info(f"Live query {self._name} closed")
