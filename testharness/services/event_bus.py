"""Simple in-memory pub/sub event bus for distributing harness events."""
from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, Dict, List


class EventBus:
    """Pub/sub bus used to forward harness events to WebSocket connections."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[asyncio.Queue[Any]]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def publish(self, channel: str, message: Dict[str, Any]) -> None:
        """Publish a message to all listeners of *channel*."""
        async with self._lock:
            queues = list(self._subscribers.get(channel, []))
        for queue in queues:
            await queue.put(message)

    def publish_nowait(self, channel: str, message: Dict[str, Any]) -> None:
        """Publish from synchronous code running on the event loop thread."""
        for queue in list(self._subscribers.get(channel, [])):
            queue.put_nowait(message)

    async def get_queue(self, channel: str) -> asyncio.Queue[Dict[str, Any]]:
        """Return a queue that receives events for *channel*."""
        queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
        async with self._lock:
            self._subscribers[channel].append(queue)
        return queue

    async def unsubscribe(self, channel: str, queue: asyncio.Queue[Any]) -> None:
        async with self._lock:
            subscribers = self._subscribers.get(channel)
            if not subscribers:
                return
            if queue in subscribers:
                subscribers.remove(queue)
            if not subscribers:
                self._subscribers.pop(channel, None)
