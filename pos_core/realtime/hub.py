"""Per-outlet fan-out of order events to live subscribers.

Publishers are request threads; subscribers are WebSocket handlers running
on an event loop. Every subscriber owns a bounded ``asyncio.Queue`` fed via
``call_soon_threadsafe`` so a publish never waits on a consumer. A subscriber
whose queue overflows is dropped from the registry and closed.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import defaultdict
from typing import Any

from pos_core.core.config import settings

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscriber:
    """One live connection registered for one outlet."""

    def __init__(
        self,
        hub: EventHub,
        outlet_id: int,
        loop: asyncio.AbstractEventLoop,
        maxsize: int,
    ) -> None:
        self.hub = hub
        self.outlet_id = outlet_id
        self.closed = False
        self._loop = loop
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)

    def offer(self, message: dict[str, Any]) -> None:
        """Schedule ``message`` for delivery; safe from any thread."""
        self._loop.call_soon_threadsafe(self._put, message)

    def _put(self, message: dict[str, Any]) -> None:
        if self.closed:
            return
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Subscriber for outlet %s overflowed; disconnecting", self.outlet_id)
            self.hub.unsubscribe(self)

    def close(self) -> None:
        """Mark closed and wake a pending ``get``; safe from any thread."""
        if self.closed:
            return
        self.closed = True
        try:
            self._loop.call_soon_threadsafe(self._wake)
        except RuntimeError:
            # Loop already gone together with its connection.
            pass

    def _wake(self) -> None:
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass

    async def get(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Return the next message, ``None`` once closed.

        Raises ``asyncio.TimeoutError`` when nothing arrives within ``timeout``.
        """
        if self.closed:
            return None
        if timeout is None:
            message = await self._queue.get()
        else:
            message = await asyncio.wait_for(self._queue.get(), timeout)
        if message is _CLOSED or self.closed:
            return None
        return message


class EventHub:
    """Registry of subscribers grouped by outlet id."""

    def __init__(self, queue_max: int | None = None) -> None:
        self.queue_max = queue_max or settings.realtime_queue_max
        self._rooms: dict[int, set[Subscriber]] = defaultdict(set)
        self._lock = threading.Lock()

    def subscribe(self, outlet_id: int, loop: asyncio.AbstractEventLoop | None = None) -> Subscriber:
        """Register a subscriber whose messages are delivered on ``loop``.

        Defaults to the running loop, so call from inside the connection's task.
        """
        subscriber = Subscriber(self, outlet_id, loop or asyncio.get_running_loop(), self.queue_max)
        with self._lock:
            self._rooms[outlet_id].add(subscriber)
        logger.debug("Subscriber added for outlet %s", outlet_id)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            room = self._rooms.get(subscriber.outlet_id)
            if room is not None:
                room.discard(subscriber)
                if not room:
                    del self._rooms[subscriber.outlet_id]
        subscriber.close()

    def subscriber_count(self, outlet_id: int) -> int:
        with self._lock:
            return len(self._rooms.get(outlet_id, ()))

    def publish(self, outlet_id: int, message: dict[str, Any]) -> int:
        """Deliver ``message`` to every subscriber of ``outlet_id``.

        Offers happen under the registry lock so concurrent publishes reach
        each subscriber in the same order. Returns the number of recipients.
        """
        dead: list[Subscriber] = []
        delivered = 0
        with self._lock:
            for subscriber in self._rooms.get(outlet_id, ()):
                try:
                    subscriber.offer(message)
                    delivered += 1
                except RuntimeError:
                    dead.append(subscriber)
        for subscriber in dead:
            logger.warning("Dropping subscriber for outlet %s with closed event loop", outlet_id)
            self.unsubscribe(subscriber)
        return delivered

    def close_all(self) -> None:
        with self._lock:
            subscribers = [subscriber for room in self._rooms.values() for subscriber in room]
            self._rooms.clear()
        for subscriber in subscribers:
            subscriber.close()


event_hub: EventHub = EventHub()
