"""
Routing of agent streaming updates into session transcripts.
"""

from dataclasses import dataclass
from typing import assert_never

from core.logger import UnifiedLogger

from .broadcaster import UpdateBroadcaster
from .events import (
    CompactionUpdate,
    SessionUpdate,
    StreamingEndedUpdate,
    StreamingProgressUpdate,
    StreamingUpdate,
)
from .manager import SessionManager, SessionSnapshot


logger = UnifiedLogger(tag="session-stream-handler")


@dataclass(frozen=True)
class HandledUpdate:
    """
    Outcome of handling one streaming update.

    Attributes:
        snapshot: Session state after the update
        significant: True when the change is worth persisting (a message was
            appended, a tool call changed, the transcript was compacted or
            the turn ended)
    """

    snapshot: SessionSnapshot
    significant: bool


class SessionStreamHandler:
    """Apply streaming updates to sessions and publish them to subscribers."""

    def __init__(self, session_manager: SessionManager, broadcaster: UpdateBroadcaster):
        self.session_manager = session_manager
        self.broadcaster = broadcaster

    async def handle_update(self, update: StreamingUpdate) -> HandledUpdate:
        """
        Route one update by event type.

        Raises:
            SessionSealedError: If a progress chunk targets an ended turn
        """
        session_id = update.data.session_id
        if session_id is None:
            raise ValueError("Streaming update carries no session id")

        async with logger.async_span("handle_update", event=update.event, session_id=session_id):
            if isinstance(update, StreamingProgressUpdate):
                applied = await self.session_manager.apply_chunk(session_id, update.data)
                handled = HandledUpdate(snapshot=applied.snapshot, significant=applied.significant)
            elif isinstance(update, CompactionUpdate):
                snapshot = await self.session_manager.compact(session_id, update.data.compaction)
                handled = HandledUpdate(snapshot=snapshot, significant=True)
            elif isinstance(update, StreamingEndedUpdate):
                snapshot = await self.session_manager.seal(session_id, usage=update.data.usage)
                handled = HandledUpdate(snapshot=snapshot, significant=True)
            elif isinstance(update, SessionUpdate):
                data = update.data
                snapshot = await self.session_manager.update_status(
                    session_id,
                    data.status,
                    title=data.title,
                    is_streaming=data.is_streaming,
                    usage=data.usage,
                    cost=data.cost,
                )
                handled = HandledUpdate(snapshot=snapshot, significant=False)
            else:
                assert_never(update)

        self.broadcaster.publish(session_id, update)
        return handled
