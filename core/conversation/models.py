"""
Transcript data model.

Messages, assistant parts, user content items and streaming chunks are frozen
pydantic models. Python attributes are snake_case; the JSON shape exchanged
with the UI and storage uses camelCase aliases.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter
from pydantic.alias_generators import to_camel


ToolCallStatus = Literal["loading", "ready", "completed", "error"]


def create_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TranscriptModel(BaseModel):
    """Base for every transcript shape: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


#######################################################################
## Assistant parts
#######################################################################

class TextPart(TranscriptModel):
    type: Literal["text"] = "text"
    message: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class ThinkingPart(TranscriptModel):
    type: Literal["thinking"] = "thinking"
    message: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class AttachmentPart(TranscriptModel):
    type: Literal["assistant-attachment"] = "assistant-attachment"
    url: str
    alt_text: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class ToolCallPart(TranscriptModel):
    type: Literal["tool-call"] = "tool-call"
    tool_name: str
    tool_call_id: str
    status: ToolCallStatus
    input: Optional[Dict[str, Any]] = None
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


AssistantPart = Annotated[
    Union[TextPart, ThinkingPart, AttachmentPart, ToolCallPart],
    Field(discriminator="type"),
]


#######################################################################
## User content
#######################################################################

class UserText(TranscriptModel):
    type: Literal["text"] = "text"
    message: str


class UserImage(TranscriptModel):
    type: Literal["image"] = "image"
    image: str
    name: Optional[str] = None


class UserFile(TranscriptModel):
    type: Literal["file"] = "file"
    file: str
    name: Optional[str] = None
    mime_type: Optional[str] = None


class UserInstructions(TranscriptModel):
    type: Literal["instructions"] = "instructions"
    instructions: str


class UserTriggerPayload(TranscriptModel):
    type: Literal["trigger-payload"] = "trigger-payload"
    payload: Dict[str, Any]
    trigger_name: Optional[str] = None


UserContent = Annotated[
    Union[UserText, UserImage, UserFile, UserInstructions, UserTriggerPayload],
    Field(discriminator="type"),
]


#######################################################################
## Messages
#######################################################################

class UserMessage(TranscriptModel):
    role: Literal["user"] = "user"
    content: Tuple[UserContent, ...] = ()
    sent_at: Optional[str] = None


@dataclass(frozen=True)
class TextRun:
    """Raw text behind the trailing text/attachment parts of the open message."""

    buffer: str
    start_index: int
    started_at: Optional[str] = None


class AssistantMessage(TranscriptModel):
    role: Literal["assistant"] = "assistant"
    parts: Tuple[AssistantPart, ...] = ()
    cost: Optional[float] = None
    sent_at: Optional[str] = None

    # Streaming state only: never serialized, dropped by load_conversation.
    _text_run: Optional[TextRun] = PrivateAttr(default=None)
    _text_run_known: bool = PrivateAttr(default=False)

    @property
    def text_run(self) -> Optional[TextRun]:
        return self._text_run

    @property
    def text_run_known(self) -> bool:
        """False for messages built outside the merger, e.g. loaded from storage."""
        return self._text_run_known

    def with_text_run(self, run: Optional[TextRun]) -> AssistantMessage:
        """Attach run state to a message the caller has just built."""
        self._text_run = run
        self._text_run_known = True
        return self


class CompactionMessage(TranscriptModel):
    role: Literal["compaction"] = "compaction"
    summary: str


class InterruptedMessage(TranscriptModel):
    role: Literal["interrupted"] = "interrupted"
    message: str
    timestamp: str


ConversationMessage = Annotated[
    Union[UserMessage, AssistantMessage, CompactionMessage, InterruptedMessage],
    Field(discriminator="role"),
]

Conversation = Tuple[ConversationMessage, ...]


class ConversationFile(TranscriptModel):
    """File attached by the user when sending a prompt."""

    name: str
    type: str
    url: str
    content: Optional[str] = None


#######################################################################
## Streaming input
#######################################################################

class TextDelta(TranscriptModel):
    type: Literal["text-delta"] = "text-delta"
    message: str
    started_at: str


class ThinkingDelta(TranscriptModel):
    type: Literal["thinking-delta"] = "thinking-delta"
    message: str
    started_at: Optional[str] = None


ChunkPart = Annotated[
    Union[TextDelta, ThinkingDelta, ToolCallPart, TextPart, ThinkingPart, AttachmentPart],
    Field(discriminator="type"),
]


class ProgressChunk(TranscriptModel):
    """One incremental update emitted while a model turn is in progress."""

    session_id: Optional[str] = None
    part: Optional[ChunkPart] = None
    cost: Optional[float] = None


#######################################################################
## Serialization helpers
#######################################################################

_conversation_adapter: TypeAdapter[Conversation] = TypeAdapter(Conversation)


def load_conversation(data: Sequence[Any]) -> Conversation:
    """Validate a JSON-shaped transcript into message models."""
    return _conversation_adapter.validate_python(tuple(data))


def dump_conversation(conversation: Sequence[ConversationMessage]) -> list[Dict[str, Any]]:
    """Render a transcript into its JSON shape (camelCase, unset fields omitted)."""
    return _conversation_adapter.dump_python(
        tuple(conversation), mode="json", by_alias=True, exclude_none=True
    )
