"""
Pydantic models for API request and response schemas.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.conversation.models import ConversationFile
from core.conversation.questions import Question
from core.sessions.manager import SessionSnapshot


#######################################################################
## Request Models
#######################################################################

class TriggerPayloadRequest(BaseModel):
    """Structured payload that started a turn from an automation trigger."""
    payload: Dict[str, Any] = Field(..., description="Trigger payload forwarded to the model")
    trigger_name: Optional[str] = Field(None, description="Name of the trigger that fired")


class UserMessageRequest(BaseModel):
    """Request model for appending a user turn to a session."""
    message: str = Field("", description="Prompt text; blank text is omitted from the message")
    files: List[ConversationFile] = Field(default_factory=list, description="Files attached to the prompt")
    trigger_payload: Optional[TriggerPayloadRequest] = Field(None, description="Optional trigger payload")
    instructions: Optional[str] = Field(None, description="Optional instructions for this turn")


class ToolOutputRequest(BaseModel):
    """Request model for completing the trailing tool call of a session."""
    output: Dict[str, Any] = Field(..., description="Output recorded on the tool call")


class InterruptRequest(BaseModel):
    """Request model for stopping a turn before the model finishes."""
    message: str = Field("Interrupted by user", description="Reason shown in the transcript")


#######################################################################
## Response Models
#######################################################################

class HealthResponse(BaseModel):
    """Lightweight liveness information."""
    status: str = Field(..., description="healthy, starting or unhealthy")
    boot_id: Optional[int] = Field(None, description="Runtime boot sequence number")


class StreamingUpdateResponse(BaseModel):
    """Result of applying one streaming update."""
    session: SessionSnapshot = Field(..., description="Session state after the update")
    significant: bool = Field(..., description="Whether the change should be persisted")


class QuestionsResponse(BaseModel):
    """Follow-up questions pending on a session's trailing tool call."""
    session_id: str = Field(..., description="Session the questions belong to")
    questions: List[Question] = Field(default_factory=list, description="Questions for the UI")


class ErrorResponse(BaseModel):
    """Standard error response model."""
    success: bool = Field(False, description="Always false for error responses")
    error: str = Field(..., description="Error type or category")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict] = Field(None, description="Additional error details")
