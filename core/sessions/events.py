"""
Streaming update envelopes exchanged with the transport layer.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field

from core.conversation.models import CompactionMessage, ProgressChunk, TranscriptModel


class SessionStatus(str, Enum):
    RUNNING = "running"
    NEEDS_YOU = "needs_you"
    CLOSED = "closed"


class InputTokenDetails(TranscriptModel):
    no_cache_tokens: Optional[int] = None
    cache_read_tokens: Optional[int] = None
    cache_write_tokens: Optional[int] = None


class OutputTokenDetails(TranscriptModel):
    text_tokens: Optional[int] = None
    reasoning_tokens: Optional[int] = None


class AgentUsage(TranscriptModel):
    input_tokens: Optional[int] = None
    input_token_details: Optional[InputTokenDetails] = None
    output_tokens: Optional[int] = None
    output_token_details: Optional[OutputTokenDetails] = None
    total_tokens: Optional[int] = None


class CompactionData(TranscriptModel):
    session_id: str
    compaction: CompactionMessage


class StreamingEndedData(TranscriptModel):
    session_id: str
    usage: Optional[AgentUsage] = None


class SessionUpdateData(TranscriptModel):
    session_id: str
    status: SessionStatus
    title: Optional[str] = None
    is_streaming: Optional[bool] = None
    usage: Optional[AgentUsage] = None
    cost: Optional[float] = None


class StreamingProgressUpdate(TranscriptModel):
    event: Literal["AGENT_STREAMING_UPDATE"] = "AGENT_STREAMING_UPDATE"
    data: ProgressChunk


class CompactionUpdate(TranscriptModel):
    event: Literal["AGENT_COMPACTION"] = "AGENT_COMPACTION"
    data: CompactionData


class StreamingEndedUpdate(TranscriptModel):
    event: Literal["AGENT_STREAMING_ENDED"] = "AGENT_STREAMING_ENDED"
    data: StreamingEndedData


class SessionUpdate(TranscriptModel):
    event: Literal["AGENT_SESSION_UPDATE"] = "AGENT_SESSION_UPDATE"
    data: SessionUpdateData


StreamingUpdate = Annotated[
    Union[StreamingProgressUpdate, CompactionUpdate, StreamingEndedUpdate, SessionUpdate],
    Field(discriminator="event"),
]
