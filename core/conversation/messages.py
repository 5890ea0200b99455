"""
Non-streaming transcript mutations.

User turns, compaction summaries and interruption markers are appended as
whole messages. Completing the trailing tool call is the only edit to an
existing message and reports precondition failures as a typed result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import (
    AssistantMessage,
    CompactionMessage,
    Conversation,
    ConversationFile,
    ConversationMessage,
    InterruptedMessage,
    ToolCallPart,
    UserContent,
    UserFile,
    UserImage,
    UserInstructions,
    UserMessage,
    UserText,
    UserTriggerPayload,
    create_timestamp,
)


PDF_MIME_TYPE = "application/pdf"


class ConversationPreconditionError(Exception):
    """Raised when a transcript edit is requested in a state that cannot accept it."""
    pass


@dataclass(frozen=True)
class TriggerPayload:
    payload: Dict[str, Any]
    trigger_name: Optional[str] = None


@dataclass(frozen=True)
class ToolOutputUpdate:
    """Outcome of completing the trailing tool call."""

    conversation: Optional[Conversation] = None
    violation: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.violation is None

    def unwrap(self) -> Conversation:
        """Return the updated transcript or raise the precondition violation."""
        if self.violation is not None or self.conversation is None:
            raise ConversationPreconditionError(self.violation or "No transcript produced")
        return self.conversation


def _file_content(file: ConversationFile) -> Optional[UserContent]:
    if file.type.startswith("image/"):
        return UserImage(image=file.url, name=file.name)
    if file.type == PDF_MIME_TYPE:
        return UserFile(file=file.url, name=file.name, mime_type=file.type)
    if file.content:
        return UserText(message=f"File: {file.name}\n```\n{file.content}\n```")
    return None


def add_user_message(
    conversation: Sequence[ConversationMessage],
    message: str,
    files: Optional[Sequence[ConversationFile]] = None,
    trigger_payload: Optional[TriggerPayload] = None,
    instructions: Optional[str] = None,
) -> Conversation:
    """
    Append one user message built from a prompt and its attachments.

    Content order: prompt text (skipped when blank), trigger payload, files,
    then instructions. Images and PDFs get dedicated content items; other
    files with text content are inlined as a fenced block. Files with neither
    are dropped.
    """
    content: List[UserContent] = []

    if message.strip():
        content.append(UserText(message=message))

    if trigger_payload is not None:
        content.append(
            UserTriggerPayload(
                payload=trigger_payload.payload,
                trigger_name=trigger_payload.trigger_name,
            )
        )

    for file in files or ():
        item = _file_content(file)
        if item is not None:
            content.append(item)

    if instructions:
        content.append(UserInstructions(instructions=instructions))

    user_message = UserMessage(content=tuple(content), sent_at=create_timestamp())
    return tuple(conversation) + (user_message,)


def add_empty_assistant_message(conversation: Sequence[ConversationMessage]) -> Conversation:
    """Open an assistant message before the first chunk of a turn arrives."""
    return tuple(conversation) + (AssistantMessage(sent_at=create_timestamp()),)


def add_compaction_message(
    conversation: Sequence[ConversationMessage], compaction: CompactionMessage
) -> Conversation:
    return tuple(conversation) + (compaction,)


def add_interrupted_message(
    conversation: Sequence[ConversationMessage],
    message: str,
    timestamp: Optional[str] = None,
) -> Conversation:
    """Record that a turn was stopped before the model finished."""
    marker = InterruptedMessage(message=message, timestamp=timestamp or create_timestamp())
    return tuple(conversation) + (marker,)


def update_tool_output(
    conversation: Sequence[ConversationMessage],
    output: Mapping[str, Any],
) -> ToolOutputUpdate:
    """
    Complete the trailing tool call of the last assistant message with `output`.

    Returns:
        ToolOutputUpdate with the new transcript, or with a violation when the
        transcript does not end in an assistant tool call.
    """
    if not conversation:
        return ToolOutputUpdate(violation="Conversation is empty")

    last_message = conversation[-1]
    if not isinstance(last_message, AssistantMessage):
        return ToolOutputUpdate(violation="Last message is not an assistant message")
    if not last_message.parts:
        return ToolOutputUpdate(violation="Last assistant message has no parts")

    last_part = last_message.parts[-1]
    if not isinstance(last_part, ToolCallPart):
        return ToolOutputUpdate(violation="Last part is not a tool call")

    completed = last_part.model_copy(
        update={
            "status": "completed",
            "completed_at": create_timestamp(),
            "output": dict(output),
        }
    )
    updated = last_message.model_copy(update={"parts": last_message.parts[:-1] + (completed,)})
    return ToolOutputUpdate(conversation=tuple(conversation[:-1]) + (updated,))
