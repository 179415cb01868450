import asyncio
import contextlib
import logging
from collections import defaultdict
from typing import Any, AsyncIterator


logger = logging.getLogger(__name__)


type Change = dict[str, Any]


class ChangeFeed:
    """Best effort, in-process notifications of writes to a room.

    Nothing in the engine depends on delivery. A subscriber that falls
    `max_pending` changes behind loses the oldest ones.
    """

    def __init__(self, max_pending: int = 100) -> None:
        self.max_pending = max_pending
        self._subscribers: defaultdict[str, set[asyncio.Queue[Change]]] = (
            defaultdict(set)
        )

    def publish(self, room_id: str, key: str) -> None:
        change = {"room_id": room_id, "key": key}
        for queue in self._subscribers.get(room_id, ()):
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(change)

    def subscribers(self, room_id: str) -> int:
        return len(self._subscribers.get(room_id, ()))

    @contextlib.asynccontextmanager
    async def subscribe(self, room_id: str) -> AsyncIterator[asyncio.Queue[Change]]:
        queue: asyncio.Queue[Change] = asyncio.Queue(maxsize=self.max_pending)
        self._subscribers[room_id].add(queue)
        logger.debug("Subscribed to %s", room_id)
        try:
            yield queue
        finally:
            self._subscribers[room_id].discard(queue)
            if not self._subscribers[room_id]:
                del self._subscribers[room_id]
            logger.debug("Unsubscribed from %s", room_id)
