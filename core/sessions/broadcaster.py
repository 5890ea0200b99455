"""
Fan-out of handled streaming updates to per-session subscribers.
"""

import asyncio
import json
from typing import AsyncIterator, Dict, List, Optional

from core.constants import DEFAULT_SUBSCRIBER_QUEUE_SIZE
from core.logger import UnifiedLogger

from .events import StreamingUpdate


logger = UnifiedLogger(tag="update-broadcaster")


class UpdateBroadcaster:
    """
    Deliver streaming updates to every subscriber of a session.

    Each subscriber owns a bounded asyncio queue. A slow subscriber never
    blocks publishing: when its queue is full the oldest pending update is
    discarded to make room.
    """

    def __init__(self, queue_size: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: Dict[str, List[asyncio.Queue]] = {}

    def subscribe(self, session_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.setdefault(session_id, []).append(queue)
        return queue

    def unsubscribe(self, session_id: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(session_id)
        if not queues:
            return
        if queue in queues:
            queues.remove(queue)
        if not queues:
            del self._subscribers[session_id]

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, []))

    def publish(self, session_id: str, update: StreamingUpdate) -> int:
        """Queue an update for all subscribers; returns how many received it."""
        queues = self._subscribers.get(session_id, [])
        for queue in queues:
            if queue.full():
                queue.get_nowait()
                logger.warning("Subscriber queue full, dropping oldest update", session_id=session_id)
            queue.put_nowait(update)
        return len(queues)

    async def stream(self, session_id: str, limit: Optional[int] = None) -> AsyncIterator[str]:
        """
        Yield a session's updates as server-sent event lines.

        Args:
            session_id: Session to follow
            limit: Stop after this many updates (unbounded when None)
        """
        queue = self.subscribe(session_id)
        delivered = 0
        try:
            while limit is None or delivered < limit:
                update = await queue.get()
                yield f"data: {json.dumps(update.to_json_dict())}\n\n"
                delivered += 1
        finally:
            self.unsubscribe(session_id, queue)
