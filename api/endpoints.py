"""
API endpoint implementations for the transcript engine.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import TypeAdapter, ValidationError

from core.runtime.state import get_runtime_context, RuntimeStateError
from core.sessions.events import StreamingUpdate
from core.sessions.manager import SessionSnapshot

from .exceptions import APIException, InvalidStreamingUpdate
from .models import (
    HealthResponse,
    InterruptRequest,
    QuestionsResponse,
    StreamingUpdateResponse,
    ToolOutputRequest,
    UserMessageRequest,
)
from .utils import create_error_response
from .services import (
    add_user_turn,
    apply_streaming_update,
    complete_tool_output,
    get_pending_questions,
    get_session_snapshot,
    get_session_transcript,
    interrupt_session,
    stream_session_events,
)

# Create API router
router = APIRouter(prefix="/api/v1", tags=["Transcript API"])

_streaming_update_adapter: TypeAdapter[StreamingUpdate] = TypeAdapter(StreamingUpdate)


#######################################################################
## Health
#######################################################################

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Lightweight health check endpoint for container healthchecks and monitoring.
    """
    try:
        runtime = get_runtime_context()
        return HealthResponse(status="healthy", boot_id=runtime.boot_id)
    except RuntimeStateError:
        # Runtime not initialized yet - still starting up
        return JSONResponse(status_code=503, content={"status": "starting"})


#######################################################################
## Streaming Updates
#######################################################################

@router.post("/updates", response_model=StreamingUpdateResponse, response_model_exclude_none=True)
async def post_streaming_update(payload: Dict[str, Any] = Body(...)):
    """
    Apply one agent streaming update (progress chunk, compaction, end of
    turn or session status) to its session.

    The response reports whether the change is significant enough to persist.
    """
    try:
        try:
            update = _streaming_update_adapter.validate_python(payload)
        except ValidationError as e:
            raise InvalidStreamingUpdate(f"{e.error_count()} validation error(s)") from e
        return await apply_streaming_update(update)
    except Exception as e:
        return create_error_response(e)


@router.get("/sessions/{session_id}/events")
async def session_events(session_id: str, limit: Optional[int] = None):
    """
    Follow a session's handled updates as Server-Sent Events.

    Each event is a `data: {json}` line carrying the update envelope.
    """
    try:
        stream = stream_session_events(session_id, limit=limit)
        return StreamingResponse(
            stream,
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache, no-transform",
                "Connection": "keep-alive",
                # Disable compression to avoid browser buffering of SSE chunks
                "Content-Encoding": "identity",
                # Prevent reverse proxies (nginx, etc.) from buffering the stream
                "X-Accel-Buffering": "no",
            }
        )
    except Exception as e:
        return create_error_response(e)


#######################################################################
## Sessions
#######################################################################

@router.get("/sessions/{session_id}", response_model=SessionSnapshot, response_model_exclude_none=True)
async def get_session(session_id: str):
    try:
        return get_session_snapshot(session_id)
    except Exception as e:
        return create_error_response(e)


@router.get("/sessions/{session_id}/transcript")
async def get_transcript(session_id: str):
    """Return the session transcript in its camelCase JSON shape."""
    try:
        return JSONResponse(content=get_session_transcript(session_id))
    except Exception as e:
        return create_error_response(e)


@router.get("/sessions/{session_id}/questions", response_model=QuestionsResponse, response_model_exclude_none=True)
async def get_questions(session_id: str):
    """
    Questions the UI should ask, derived from the session's trailing tool call.
    """
    try:
        return get_pending_questions(session_id)
    except Exception as e:
        return create_error_response(e)


@router.post("/sessions/{session_id}/messages", response_model=SessionSnapshot, response_model_exclude_none=True)
async def post_user_message(session_id: str, request: UserMessageRequest):
    """
    Append a user message. Starts the session if needed and reopens it for
    streaming when the previous turn has ended.
    """
    try:
        return await add_user_turn(
            session_id,
            request.message,
            files=request.files,
            trigger_payload=request.trigger_payload,
            instructions=request.instructions,
        )
    except Exception as e:
        return create_error_response(e)


@router.post("/sessions/{session_id}/tool-output", response_model=SessionSnapshot, response_model_exclude_none=True)
async def post_tool_output(session_id: str, request: ToolOutputRequest):
    """Complete the trailing tool call with the output the client produced."""
    try:
        return await complete_tool_output(session_id, request.output)
    except Exception as e:
        return create_error_response(e)


@router.post("/sessions/{session_id}/interrupt", response_model=SessionSnapshot, response_model_exclude_none=True)
async def post_interrupt(session_id: str, request: InterruptRequest = InterruptRequest()):
    try:
        return await interrupt_session(session_id, request.message)
    except Exception as e:
        return create_error_response(e)


#######################################################################
## Error Handlers (Note: These will be registered with the main FastAPI app)
#######################################################################

def register_exception_handlers(app):
    """Register exception handlers with the FastAPI app."""

    @app.exception_handler(APIException)
    async def api_exception_handler(request, exc: APIException):
        """Handle API-specific exceptions with proper error responses."""
        return create_error_response(exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc: Exception):
        """Handle unexpected exceptions with generic error responses."""
        return create_error_response(exc)
