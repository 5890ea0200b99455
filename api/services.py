"""
Business logic services for API endpoints.

Bridges the runtime session services to HTTP: resolves the active runtime,
translates domain errors into API exceptions and shapes responses.
"""

from typing import Any, Dict, List, Optional

from core.conversation.messages import TriggerPayload
from core.conversation.models import ConversationFile, dump_conversation
from core.conversation.questions import get_questions
from core.logger import UnifiedLogger
from core.runtime.context import RuntimeContext
from core.runtime.state import RuntimeStateError, get_runtime_context
from core.sessions.events import StreamingUpdate
from core.sessions.manager import SessionNotFoundError, SessionSealedError, SessionSnapshot

from .exceptions import (
    InvalidStreamingUpdate,
    PreconditionViolation,
    SessionNotFound,
    SessionSealed,
    SystemConfigurationError,
)
from .models import QuestionsResponse, StreamingUpdateResponse, TriggerPayloadRequest


logger = UnifiedLogger(tag="api-services")


def _runtime() -> RuntimeContext:
    try:
        return get_runtime_context()
    except RuntimeStateError as e:
        raise SystemConfigurationError(str(e)) from e


async def apply_streaming_update(update: StreamingUpdate) -> StreamingUpdateResponse:
    """Route one agent update into its session."""
    runtime = _runtime()
    try:
        handled = await runtime.stream_handler.handle_update(update)
    except SessionSealedError as e:
        raise SessionSealed(e.session_id) from e
    except SessionNotFoundError as e:
        raise SessionNotFound(e.session_id) from e
    except ValueError as e:
        raise InvalidStreamingUpdate(str(e)) from e

    return StreamingUpdateResponse(session=handled.snapshot, significant=handled.significant)


def get_session_snapshot(session_id: str) -> SessionSnapshot:
    try:
        return _runtime().session_manager.get_session(session_id)
    except SessionNotFoundError as e:
        raise SessionNotFound(session_id) from e


def get_session_transcript(session_id: str) -> List[Dict[str, Any]]:
    """Session transcript in its JSON wire shape."""
    try:
        conversation = _runtime().session_manager.get_conversation(session_id)
    except SessionNotFoundError as e:
        raise SessionNotFound(session_id) from e
    return dump_conversation(conversation)


def get_pending_questions(session_id: str) -> QuestionsResponse:
    try:
        conversation = _runtime().session_manager.get_conversation(session_id)
    except SessionNotFoundError as e:
        raise SessionNotFound(session_id) from e
    return QuestionsResponse(session_id=session_id, questions=list(get_questions(conversation)))


async def add_user_turn(
    session_id: str,
    message: str,
    files: List[ConversationFile],
    trigger_payload: Optional[TriggerPayloadRequest] = None,
    instructions: Optional[str] = None,
) -> SessionSnapshot:
    """Append a user message; this reopens a sealed session."""
    payload = None
    if trigger_payload is not None:
        payload = TriggerPayload(payload=trigger_payload.payload, trigger_name=trigger_payload.trigger_name)

    snapshot = await _runtime().session_manager.add_user_message(
        session_id,
        message,
        files=files,
        trigger_payload=payload,
        instructions=instructions,
    )
    logger.info("User message added", session_id=session_id, message_count=len(snapshot.conversation))
    return snapshot


async def complete_tool_output(session_id: str, output: Dict[str, Any]) -> SessionSnapshot:
    """Record the output of the session's trailing tool call."""
    session_manager = _runtime().session_manager
    try:
        result = await session_manager.update_tool_output(session_id, output)
    except SessionNotFoundError as e:
        raise SessionNotFound(session_id) from e

    if not result.ok:
        raise PreconditionViolation(session_id, result.violation or "Tool output rejected")
    return session_manager.get_session(session_id)


async def interrupt_session(session_id: str, message: str) -> SessionSnapshot:
    try:
        return await _runtime().session_manager.interrupt(session_id, message)
    except SessionNotFoundError as e:
        raise SessionNotFound(session_id) from e


def stream_session_events(session_id: str, limit: Optional[int] = None):
    """Async iterator of server-sent event lines for one session."""
    return _runtime().broadcaster.stream(session_id, limit=limit)
