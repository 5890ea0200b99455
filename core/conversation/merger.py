"""
Streaming merge engine for assistant transcripts.

Folds progress chunks (text and thinking deltas, tool-call lifecycle updates,
cost updates) into a transcript. Every merge returns a new transcript: earlier
messages are shared by reference and only the open assistant message is
rebuilt.

Text deltas accumulate in an explicit text run carried on the open assistant
message. The run keeps the raw, unsplit text and the index of its first part,
so the whole buffer can be re-split on each delta; image tags that arrive
across several chunks turn into attachment parts once complete.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union, assert_never

from core.chunking import MarkdownChunk, parse_markdown_chunks
from core.constants import INTERNAL_URL_PREFIXES, REMOTE_URL_PREFIXES

from .models import (
    AssistantMessage,
    AttachmentPart,
    ChunkPart,
    Conversation,
    ConversationMessage,
    ProgressChunk,
    TextDelta,
    TextPart,
    TextRun,
    ThinkingDelta,
    ThinkingPart,
    ToolCallPart,
    create_timestamp,
)


RunPart = Union[TextPart, AttachmentPart]


@dataclass(frozen=True)
class MergeResult:
    conversation: Conversation
    run: Optional[TextRun] = None


def _open_message(conversation: Sequence[ConversationMessage]) -> Tuple[AssistantMessage, bool]:
    """Return the message to merge into and whether it had to be created."""
    if conversation and isinstance(conversation[-1], AssistantMessage):
        return conversation[-1], False
    return AssistantMessage(), True


def _rebuildable(part) -> bool:
    """True when the raw text of a part can be written back out exactly."""
    if isinstance(part, TextPart):
        return True
    if isinstance(part, AttachmentPart):
        # Resolved URLs pass through the resolver unchanged; ")" and "]" would
        # end the tag early.
        return (
            part.url.startswith(REMOTE_URL_PREFIXES + INTERNAL_URL_PREFIXES)
            and ")" not in part.url
            and "]" not in (part.alt_text or "")
        )
    return False


def _raw_text(part: RunPart) -> str:
    if isinstance(part, TextPart):
        return part.message
    return f"![{part.alt_text or ''}]({part.url})"


def _recover_run(parts: Sequence) -> Optional[TextRun]:
    """
    Rebuild a run from the trailing text/attachment parts of a message.

    Used for transcripts that were stored and loaded again, which carry no
    run state. Re-splitting the rebuilt buffer yields the same parts.
    """
    start = len(parts)
    while start > 0 and _rebuildable(parts[start - 1]):
        start -= 1
    if start == len(parts):
        return None
    tail = parts[start:]
    return TextRun(
        buffer="".join(_raw_text(part) for part in tail),
        start_index=start,
        started_at=tail[0].started_at,
    )


def _live_run(message: AssistantMessage, parts: Sequence) -> Optional[TextRun]:
    """
    Return the run backing the tail of `parts`, if any.

    The message's run is trusted only while every part from its start index on
    is still a text or attachment part. A message the merger never touched
    (loaded from storage), or whose tail was edited since, has its run rebuilt
    from the tail. A run the merger ended stays ended.
    """
    run = message.text_run
    if run is None:
        return None if message.text_run_known else _recover_run(parts)
    tail = parts[run.start_index:]
    if run.start_index < len(parts) and all(
        isinstance(part, (TextPart, AttachmentPart)) for part in tail
    ):
        return run
    return _recover_run(parts)


def _same_content(previous: RunPart, chunk: MarkdownChunk) -> bool:
    if isinstance(previous, TextPart):
        return previous.message == chunk.text
    return previous.url == chunk.url and previous.alt_text == chunk.alt_text


def _build_run_parts(
    chunks: Sequence[MarkdownChunk],
    previous_parts: Sequence[RunPart],
    run_started_at: Optional[str],
    received_at: str,
    opening_delta: bool,
) -> List[RunPart]:
    """
    Map split chunks onto transcript parts, keeping timestamps stable.

    The first part carries the run's start time. Later parts keep the start
    time of the part previously at the same position, or start now. Parts
    whose content changed complete now; untouched parts keep their
    completion time. The trailing part of a run's first delta is still open.
    """
    parts: List[RunPart] = []
    last_index = len(chunks) - 1
    for index, chunk in enumerate(chunks):
        part_type = TextPart if chunk.kind == "text" else AttachmentPart
        previous = previous_parts[index] if index < len(previous_parts) else None
        if previous is not None and not isinstance(previous, part_type):
            previous = None

        if index == 0:
            started_at = run_started_at
        elif previous is not None:
            started_at = previous.started_at
        else:
            started_at = received_at

        if previous is not None and _same_content(previous, chunk):
            completed_at = previous.completed_at
        elif opening_delta and index == last_index:
            completed_at = None
        else:
            completed_at = received_at

        if chunk.kind == "text":
            parts.append(
                TextPart(message=chunk.text, started_at=started_at, completed_at=completed_at)
            )
        else:
            parts.append(
                AttachmentPart(
                    url=chunk.url or "",
                    alt_text=chunk.alt_text,
                    started_at=started_at,
                    completed_at=completed_at,
                )
            )
    return parts


def _merge_text_delta(
    parts: List, delta: TextDelta, run: Optional[TextRun]
) -> Tuple[List, TextRun]:
    opening_delta = run is None
    if run is None:
        run = TextRun(buffer="", start_index=len(parts), started_at=delta.started_at)

    buffer = run.buffer + delta.message
    chunks = parse_markdown_chunks(buffer) or [MarkdownChunk(kind="text", text="")]
    previous_parts = parts[run.start_index:]
    run_parts = _build_run_parts(
        chunks,
        previous_parts,
        run_started_at=run.started_at,
        received_at=delta.started_at,
        opening_delta=opening_delta,
    )
    new_parts = parts[: run.start_index] + run_parts
    return new_parts, TextRun(buffer=buffer, start_index=run.start_index, started_at=run.started_at)


def _merge_thinking_delta(parts: List, delta: ThinkingDelta) -> List:
    received_at = delta.started_at or create_timestamp()
    if parts and isinstance(parts[-1], ThinkingPart):
        last = parts[-1]
        parts[-1] = ThinkingPart(
            message=last.message + delta.message,
            started_at=last.started_at or received_at,
            completed_at=received_at,
        )
    else:
        parts.append(ThinkingPart(message=delta.message, started_at=received_at))
    return parts


def merge_tool_call(existing: ToolCallPart, update: ToolCallPart) -> ToolCallPart:
    """
    Overlay the fields an update carries onto an existing tool call.

    Fields absent from the update are kept; fields are never cleared.
    """
    changes = {
        name: getattr(update, name)
        for name in update.model_fields_set
        if getattr(update, name) is not None
    }
    return existing.model_copy(update=changes)


def _merge_tool_call(parts: List, update: ToolCallPart) -> List:
    for index, part in enumerate(parts):
        if isinstance(part, ToolCallPart) and part.tool_call_id == update.tool_call_id:
            parts[index] = merge_tool_call(part, update)
            return parts
    parts.append(update)
    return parts


def merge_chunk(
    conversation: Sequence[ConversationMessage],
    chunk: ProgressChunk,
) -> MergeResult:
    """
    Apply one progress chunk to a transcript.

    Args:
        conversation: Transcript to merge into (never mutated)
        chunk: Streaming update to apply

    Returns:
        MergeResult with the new transcript and the text run now attached to
        its open message (None when that message no longer ends in a run).
    """
    message, created = _open_message(conversation)
    parts = list(message.parts)
    run = None if created else _live_run(message, parts)

    part: Optional[ChunkPart] = chunk.part
    if part is None:
        pass
    elif isinstance(part, TextDelta):
        parts, run = _merge_text_delta(parts, part, run)
    elif isinstance(part, ThinkingDelta):
        parts = _merge_thinking_delta(parts, part)
        run = None
    elif isinstance(part, ToolCallPart):
        parts = _merge_tool_call(parts, part)
        run = None
    elif isinstance(part, (TextPart, ThinkingPart, AttachmentPart)):
        parts.append(part)
        run = None
    else:
        assert_never(part)

    changes: dict = {"parts": tuple(parts)}
    if chunk.cost is not None:
        changes["cost"] = chunk.cost
    updated = message.model_copy(update=changes).with_text_run(run)

    prefix = tuple(conversation) if created else tuple(conversation[:-1])
    return MergeResult(conversation=prefix + (updated,), run=run)


def merge(conversation: Sequence[ConversationMessage], chunk: ProgressChunk) -> Conversation:
    """Apply one progress chunk; the text run travels on the open message."""
    return merge_chunk(conversation, chunk).conversation


class ChunkMerger:
    """
    Owns one transcript while it streams.

    A thin holder around `merge`: the text run lives on the open assistant
    message, so image tags split across chunks are resolved against the full
    raw text whichever entry point applied the earlier chunks.
    """

    def __init__(self, conversation: Sequence[ConversationMessage] = ()):
        self._conversation: Conversation = tuple(conversation)

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    @property
    def run(self) -> Optional[TextRun]:
        if self._conversation and isinstance(self._conversation[-1], AssistantMessage):
            return self._conversation[-1].text_run
        return None

    def apply(self, chunk: ProgressChunk) -> Conversation:
        self._conversation = merge(self._conversation, chunk)
        return self._conversation

    def reset(self, conversation: Sequence[ConversationMessage]) -> None:
        """Replace the transcript after a non-streaming edit."""
        self._conversation = tuple(conversation)
