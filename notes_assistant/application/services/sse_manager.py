"""SSE Manager — in-process broadcaster for indexing progress updates."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

_MAX_PENDING_EVENTS = 256


@dataclass(eq=False)
class _Subscriber:
    owner_id: str | None
    queue: asyncio.Queue[str | None] = field(
        default_factory=lambda: asyncio.Queue(maxsize=_MAX_PENDING_EVENTS)
    )


class SSEManager:
    """Fans indexing events out to connected Server-Sent Events clients.

    Each client gets its own bounded queue. A client may subscribe to a
    single owner's events; events without an ``owner_id`` reach everyone.
    Clients that stop draining their queue are disconnected.
    """

    def __init__(self) -> None:
        self._subscribers: list[_Subscriber] = []

    async def subscribe(self, owner_id: str | None = None) -> AsyncGenerator[str, None]:
        """Yield formatted SSE messages until the server disconnects the client."""
        subscriber = _Subscriber(owner_id=owner_id)
        self._subscribers.append(subscriber)
        logger.debug("SSE client subscribed (owner=%s)", owner_id or "*")
        try:
            while True:
                event = await subscriber.queue.get()
                if event is None:
                    break
                yield event
        finally:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

    async def broadcast(self, event_type: str, data: dict[str, Any]) -> None:
        """Push an event to every subscriber interested in ``data["owner_id"]``."""
        sse_message = f"event: {event_type}\ndata: {json.dumps(data, default=str)}\n\n"
        target_owner = data.get("owner_id")
        dead: list[_Subscriber] = []

        for subscriber in self._subscribers:
            if subscriber.owner_id and target_owner and subscriber.owner_id != target_owner:
                continue
            try:
                subscriber.queue.put_nowait(sse_message)
            except asyncio.QueueFull:
                dead.append(subscriber)
                logger.warning("SSE client queue full — disconnecting")

        for subscriber in dead:
            self._subscribers.remove(subscriber)
            self._close(subscriber)

    async def shutdown(self) -> None:
        """Disconnect all connected clients."""
        for subscriber in self._subscribers:
            self._close(subscriber)
        self._subscribers.clear()

    @staticmethod
    def _close(subscriber: _Subscriber) -> None:
        # Make room for the sentinel on a full queue
        while subscriber.queue.full():
            subscriber.queue.get_nowait()
        subscriber.queue.put_nowait(None)

    @property
    def client_count(self) -> int:
        return len(self._subscribers)
