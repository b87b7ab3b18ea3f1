"""Replay-latest broadcast of cart snapshots.

Every subscriber gets the current snapshot first, then each published
snapshot in publish order. Subscribers have their own unbounded queue, so a
slow reader lags behind but never skips a state.
"""
import asyncio
import threading
import weakref

from basket.logging import get_logger
from .models import Snapshot

logger = get_logger(__name__)

_CLOSED = object()


class Subscription:
    """Async iterator over the snapshots published after subscribing.

    Usage:
        async with engine.observe() as updates:
            async for snapshot in updates:
                ...

    Close the subscription when done, with ``close()`` or by leaving the
    ``async with`` block. Until then every commit is queued for it. The stream
    only holds subscriptions weakly, so one that is dropped unclosed stops
    receiving snapshots once it is garbage collected.
    """

    def __init__(self, stream: "SnapshotStream", loop: asyncio.AbstractEventLoop):
        self._stream = stream
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Snapshots delivered but not yet consumed."""
        return self._queue.qsize()

    def _put_now(self, item) -> None:
        self._queue.put_nowait(item)

    def _deliver(self, item) -> bool:
        """Hand ``item`` to the subscriber's loop. False if that loop is gone."""
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            return False
        return True

    async def get(self) -> Snapshot:
        """Wait for the next snapshot."""
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the marker so later calls stop as well
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        """Stop receiving snapshots; a pending ``get`` ends iteration."""
        if self._closed:
            return
        self._closed = True
        self._stream._unsubscribe(self)
        self._deliver(_CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Snapshot:
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class SnapshotStream:
    """Single shared, append-only sequence of snapshots."""

    def __init__(self, initial: Snapshot):
        self._lock = threading.Lock()
        self._latest = initial
        self._subscribers: "weakref.WeakSet[Subscription]" = weakref.WeakSet()

    @property
    def latest(self) -> Snapshot:
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, snapshot: Snapshot) -> None:
        """Replace the latest snapshot and fan it out to every subscriber."""
        with self._lock:
            self._latest = snapshot
            dead = [sub for sub in self._subscribers if not sub._deliver(snapshot)]
            for sub in dead:
                self._subscribers.discard(sub)
        if dead:
            logger.debug(f"Dropped {len(dead)} subscriber(s) with a closed event loop")

    def subscribe(self) -> Subscription:
        """Attach a subscriber consumed by the running event loop."""
        loop = asyncio.get_running_loop()
        with self._lock:
            subscription = Subscription(self, loop)
            subscription._put_now(self._latest)
            self._subscribers.add(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers.discard(subscription)
