"""
Session management for streaming chat transcripts.

Each session owns one transcript and the merge state for its open assistant
message. Mutations of a session are serialized with a per-session asyncio
lock so chunks are merged strictly in arrival order; different sessions are
independent and proceed concurrently.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

from core.conversation.merger import ChunkMerger
from core.conversation.messages import (
    ToolOutputUpdate,
    TriggerPayload,
    add_compaction_message,
    add_interrupted_message,
    add_user_message,
    update_tool_output,
)
from core.conversation.models import (
    AssistantMessage,
    CompactionMessage,
    Conversation,
    ConversationFile,
    ConversationMessage,
    ProgressChunk,
    ToolCallPart,
    TranscriptModel,
)
from core.logger import UnifiedLogger

from .events import AgentUsage, SessionStatus


logger = UnifiedLogger(tag="session-manager")


class SessionNotFoundError(Exception):
    """Raised when a session id is not registered."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' not found")


class SessionSealedError(Exception):
    """Raised when a chunk arrives for a transcript whose turn has ended."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' is sealed; add a user message to start a new turn")


class SessionSnapshot(TranscriptModel):
    """Read-only view of a session handed to transport and persistence."""

    session_id: str
    status: SessionStatus
    title: Optional[str] = None
    is_streaming: bool = False
    sealed: bool = False
    cost: float = 0.0
    usage: Optional[AgentUsage] = None
    conversation: Conversation = ()


@dataclass
class SessionState:
    session_id: str
    merger: ChunkMerger = field(default_factory=ChunkMerger)
    status: SessionStatus = SessionStatus.RUNNING
    title: Optional[str] = None
    is_streaming: bool = False
    sealed: bool = False
    cost: float = 0.0
    usage: Optional[AgentUsage] = None

    @property
    def conversation(self) -> Conversation:
        return self.merger.conversation

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            status=self.status,
            title=self.title,
            is_streaming=self.is_streaming,
            sealed=self.sealed,
            cost=self.cost,
            usage=self.usage,
            conversation=self.conversation,
        )


@dataclass(frozen=True)
class ChunkApplied:
    """Result of merging one chunk into a session."""

    snapshot: SessionSnapshot
    significant: bool


class SessionManager:
    """
    Registry of live sessions keyed by session id.

    Sessions are created on first use. Readers get immutable snapshots; every
    write goes through the session's lock.
    """

    def __init__(self):
        self._sessions: Dict[str, SessionState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    def _state(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            raise SessionNotFoundError(session_id)
        return state

    def _state_or_create(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            state = SessionState(session_id=session_id)
            self._sessions[session_id] = state
        return state

    def create_session(
        self,
        session_id: str,
        conversation: Sequence[ConversationMessage] = (),
        title: Optional[str] = None,
    ) -> SessionSnapshot:
        """Register a session, optionally restoring a stored transcript."""
        state = SessionState(session_id=session_id, merger=ChunkMerger(conversation), title=title)
        self._sessions[session_id] = state
        return state.snapshot()

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get_session(self, session_id: str) -> SessionSnapshot:
        return self._state(session_id).snapshot()

    def get_conversation(self, session_id: str) -> Conversation:
        return self._state(session_id).conversation

    def get_message_count(self, session_id: str) -> int:
        state = self._sessions.get(session_id)
        return len(state.conversation) if state else 0

    async def clear_history(self, session_id: str) -> None:
        """Forget a session's state. Its lock is kept so queued writers stay serialized."""
        async with self._lock_for(session_id):
            self._sessions.pop(session_id, None)

    async def apply_chunk(self, session_id: str, chunk: ProgressChunk) -> ChunkApplied:
        """
        Merge one streaming chunk into a session's transcript.

        An update is significant (worth persisting) when it appended a message
        or touched a tool call.

        Raises:
            SessionSealedError: If the session's turn has already ended
        """
        async with self._lock_for(session_id):
            state = self._state_or_create(session_id)
            if state.sealed:
                raise SessionSealedError(session_id)

            previous_length = len(state.conversation)
            conversation = state.merger.apply(chunk)
            state.is_streaming = True
            if chunk.cost is not None:
                state.cost = chunk.cost

            significant = len(conversation) > previous_length or isinstance(chunk.part, ToolCallPart)
            if isinstance(chunk.part, ToolCallPart):
                logger.info(
                    "Tool call update merged",
                    session_id=session_id,
                    tool_name=chunk.part.tool_name,
                    tool_call_id=chunk.part.tool_call_id,
                    status=chunk.part.status,
                )
            return ChunkApplied(snapshot=state.snapshot(), significant=significant)

    async def add_user_message(
        self,
        session_id: str,
        message: str,
        files: Optional[Sequence[ConversationFile]] = None,
        trigger_payload: Optional[TriggerPayload] = None,
        instructions: Optional[str] = None,
    ) -> SessionSnapshot:
        """Append a user turn and reopen the session for streaming."""
        async with self._lock_for(session_id):
            state = self._state_or_create(session_id)
            conversation = add_user_message(
                state.conversation,
                message,
                files=files,
                trigger_payload=trigger_payload,
                instructions=instructions,
            )
            state.merger.reset(conversation)
            state.sealed = False
            state.status = SessionStatus.RUNNING
            return state.snapshot()

    async def update_tool_output(self, session_id: str, output: Mapping[str, Any]) -> ToolOutputUpdate:
        """Complete the trailing tool call; the session is unchanged on violation."""
        async with self._lock_for(session_id):
            state = self._state(session_id)
            result = update_tool_output(state.conversation, output)
            if result.ok:
                state.merger.reset(result.unwrap())
            else:
                logger.warning(
                    "Tool output rejected",
                    session_id=session_id,
                    violation=result.violation,
                )
            return result

    async def seal(self, session_id: str, usage: Optional[AgentUsage] = None) -> SessionSnapshot:
        """End the current model turn; further chunks are rejected."""
        async with self._lock_for(session_id):
            state = self._state(session_id)
            state.sealed = True
            state.is_streaming = False
            if usage is not None:
                state.usage = usage
            logger.activity(
                "Model turn sealed",
                session_id=session_id,
                metadata={"message_count": len(state.conversation), "cost": state.cost},
            )
            return state.snapshot()

    async def interrupt(self, session_id: str, message: str) -> SessionSnapshot:
        """Record an interruption marker and seal the turn."""
        async with self._lock_for(session_id):
            state = self._state(session_id)
            state.merger.reset(add_interrupted_message(state.conversation, message))
            state.sealed = True
            state.is_streaming = False
            logger.activity("Model turn interrupted", session_id=session_id, metadata={"reason": message})
            return state.snapshot()

    async def compact(self, session_id: str, compaction: CompactionMessage) -> SessionSnapshot:
        """
        Replace a session's transcript with its compaction summary.

        The new transcript is the summary as a user message followed by the
        compaction marker kept for history.
        """
        async with self._lock_for(session_id):
            state = self._state_or_create(session_id)
            previous_count = len(state.conversation)
            conversation = add_user_message((), compaction.summary)
            conversation = add_compaction_message(conversation, compaction)
            state.merger.reset(conversation)
            logger.activity(
                "Session compacted",
                session_id=session_id,
                metadata={"original_message_count": previous_count},
            )
            return state.snapshot()

    async def update_status(
        self,
        session_id: str,
        status: SessionStatus,
        title: Optional[str] = None,
        is_streaming: Optional[bool] = None,
        usage: Optional[AgentUsage] = None,
        cost: Optional[float] = None,
    ) -> SessionSnapshot:
        async with self._lock_for(session_id):
            state = self._state_or_create(session_id)
            state.status = status
            if title is not None:
                state.title = title
            if is_streaming is not None:
                state.is_streaming = is_streaming
            if usage is not None:
                state.usage = usage
            if cost is not None:
                state.cost = cost
            return state.snapshot()

    def open_message(self, session_id: str) -> Optional[AssistantMessage]:
        """The assistant message still receiving deltas, if any."""
        state = self._state(session_id)
        if state.sealed or not state.conversation:
            return None
        last = state.conversation[-1]
        return last if isinstance(last, AssistantMessage) else None
