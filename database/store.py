"""Document store interface with push-based change notification

Every backend exposes the same key-path API:

    get(path)                      -> value or None
    set(path, value)               full overwrite (None removes)
    update(path, fields)           merge, keys may be relative sub-paths
    remove(path)                   delete subtree
    increment(path, deltas, floor) atomic per-document counter update
    children(path)                 child values of a collection
    subscribe(path)                async context manager of snapshots

Subscriptions
-------------
A write at path P notifies every subscription whose path is an ancestor
or a descendant of P. The subscriber receives the full snapshot of its own
path, re-read after the write. Delivery is at least once: a subscriber may
see the same snapshot twice, never a partial one.

Every subscribe must be paired with an unsubscribe; the context manager
does that on exit:

    async with store.subscribe("polls") as subscription:
        async for snapshot in subscription:
            ...
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from config import get_logger
from database.paths import is_related, split_path

logger = get_logger(__name__).bind(component="document_store")


class Subscription:
    """Live view of one path: a queue of full snapshots."""

    def __init__(self, path: str):
        self.path = path
        self.segments = split_path(path)
        # Snapshots are whole values, so only the newest undelivered one matters
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)

    def push(self, snapshot: Any) -> None:
        """Queue snapshot, replacing one the reader has not taken yet"""
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(snapshot)

    async def next(self, timeout: Optional[float] = None) -> Any:
        """Wait for the next snapshot.

        Raises:
            asyncio.TimeoutError: nothing arrived within timeout
        """
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout)

    def pending(self) -> int:
        return self._queue.qsize()

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        return await self._queue.get()


class DocumentStore:
    """Base class for document store backends

    Subclasses implement the read/write primitives; this class owns the
    subscription registry and fan-out of change notifications.
    """

    backend = "abstract"

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    # ------------------------------------------------------------------
    # Primitives (implemented by backends)
    # ------------------------------------------------------------------

    async def get(self, path: str) -> Any:
        raise NotImplementedError

    async def set(self, path: str, value: Any) -> None:
        raise NotImplementedError

    async def set_if_absent(self, path: str, value: Any) -> bool:
        """Write value only if nothing is stored at path. True when written."""
        raise NotImplementedError

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Merge fields below path.

        Raises:
            MissingDocumentError: a field would land in a missing document
        """
        raise NotImplementedError

    async def remove(self, path: str) -> None:
        raise NotImplementedError

    async def increment(
        self, path: str, deltas: Dict[str, int], floor: int = 0
    ) -> Dict[str, int]:
        """Atomic numeric deltas, each result floored.

        Raises:
            MissingDocumentError: the document holding the counters is gone
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources"""
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Derived reads
    # ------------------------------------------------------------------

    async def children(self, path: str) -> List[Any]:
        """Child values of a collection (empty list if missing)."""
        value = await self.get(path)
        if isinstance(value, dict):
            return list(value.values())
        if isinstance(value, list):
            return [item for item in value if item is not None]
        return []

    async def exists(self, path: str) -> bool:
        return await self.get(path) is not None

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def subscribe(self, path: str):
        """Subscribe to snapshots of path.

        The current snapshot is delivered immediately, then one snapshot per
        related write until the context exits.
        """
        subscription = Subscription(path)
        self._subscriptions.append(subscription)
        logger.debug("subscribed", path=path, active=len(self._subscriptions))
        try:
            subscription.push(await self.get(path))
            yield subscription
        finally:
            self._subscriptions.remove(subscription)
            logger.debug("unsubscribed", path=path, active=len(self._subscriptions))

    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def _publish(self, path: str) -> None:
        """Push fresh snapshots to every subscription related to path."""
        if not self._subscriptions:
            return

        segments = split_path(path)
        snapshots: Dict[str, Any] = {}
        for subscription in list(self._subscriptions):
            if not is_related(subscription.segments, segments):
                continue
            if subscription.path not in snapshots:
                snapshots[subscription.path] = await self.get(subscription.path)
            subscription.push(snapshots[subscription.path])
