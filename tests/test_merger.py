"""Tests for the streaming chunk merger."""

from typing import get_args

import pytest
from hypothesis import given, settings, strategies as st
from pydantic import ValidationError

from core.conversation.merger import ChunkMerger, merge, merge_tool_call
from core.conversation.models import (
    AssistantMessage,
    AttachmentPart,
    ChunkPart,
    ProgressChunk,
    TextDelta,
    TextPart,
    TextRun,
    ThinkingDelta,
    ThinkingPart,
    ToolCallPart,
    UserMessage,
    UserText,
    dump_conversation,
    load_conversation,
)

from .conftest import T0, T1, T2


def text_delta(message, started_at=T0):
    return ProgressChunk(part=TextDelta(message=message, started_at=started_at))


def tool_call(tool_call_id="call-1", **fields):
    fields.setdefault("tool_name", "search")
    fields.setdefault("status", "loading")
    return ProgressChunk(part=ToolCallPart(tool_call_id=tool_call_id, **fields))


def test_first_delta_opens_assistant_message():
    conversation = merge((), text_delta("Hello", T0))
    assert len(conversation) == 1
    message = conversation[0]
    assert isinstance(message, AssistantMessage)
    assert message.parts == (TextPart(message="Hello", started_at=T0),)


def test_second_delta_extends_text_and_completes_it():
    conversation = merge((), text_delta("Hello", T0))
    conversation = merge(conversation, text_delta(" world", T1))
    assert conversation[0].parts == (
        TextPart(message="Hello world", started_at=T0, completed_at=T1),
    )


def test_wire_shape_uses_camel_case_and_omits_unset_fields():
    conversation = merge((), text_delta("Hello", T0))
    assert conversation[0].to_json_dict() == {
        "role": "assistant",
        "parts": [{"type": "text", "message": "Hello", "startedAt": T0}],
    }


def test_image_split_across_chunks_becomes_attachment():
    merger = ChunkMerger()
    merger.apply(text_delta("![alt](https://example.com/img", T0))
    assert merger.conversation[0].parts == (
        TextPart(message="![alt](https://example.com/img", started_at=T0),
    )

    merger.apply(text_delta(".png)", T1))
    assert merger.conversation[0].parts == (
        AttachmentPart(
            url="https://example.com/img.png",
            alt_text="alt",
            started_at=T0,
            completed_at=T1,
        ),
    )


def test_text_after_image_keeps_earlier_fragments():
    merger = ChunkMerger()
    merger.apply(text_delta("See ![c](https://e/c.png)", T0))
    merger.apply(text_delta(" done", T1))
    parts = merger.conversation[0].parts
    assert [type(part) for part in parts] == [TextPart, AttachmentPart, TextPart]
    assert parts[0] == TextPart(message="See ", started_at=T0, completed_at=T0)
    assert parts[1].url == "https://e/c.png"
    assert parts[1].started_at == T0
    assert parts[2] == TextPart(message=" done", started_at=T1, completed_at=T1)


def test_no_adjacent_text_parts_from_one_run():
    merger = ChunkMerger()
    for index, piece in enumerate(["Hel", "lo ", "![x](", "https://e/x.png", ") bye"]):
        merger.apply(text_delta(piece, f"2025-01-01T00:00:0{index}.000Z"))
    parts = merger.conversation[0].parts
    for previous, current in zip(parts, parts[1:]):
        assert not (isinstance(previous, TextPart) and isinstance(current, TextPart))
    assert [part.type for part in parts] == ["text", "assistant-attachment", "text"]


def test_started_at_never_changes_once_set():
    merger = ChunkMerger()
    merger.apply(text_delta("a", T0))
    merger.apply(text_delta("b", T1))
    merger.apply(text_delta("c", T2))
    assert merger.conversation[0].parts[0].started_at == T0
    assert merger.conversation[0].parts[0].completed_at == T2


def test_fenced_image_stays_text_while_streaming():
    merger = ChunkMerger()
    merger.apply(text_delta("```\n![i](https://e/i.png)", T0))
    merger.apply(text_delta("\n```\n", T1))
    parts = merger.conversation[0].parts
    assert len(parts) == 1
    assert parts[0].message == "```\n![i](https://e/i.png)\n```\n"


def test_run_travels_on_the_open_message():
    conversation = merge((), text_delta("![a](https://e/", T0))
    conversation = merge(conversation, text_delta("a.png) ok", T1))
    assert isinstance(conversation[0].parts[0], AttachmentPart)
    assert conversation[0].text_run == TextRun(
        buffer="![a](https://e/a.png) ok", start_index=0, started_at=T0
    )
    assert "textRun" not in conversation[0].to_json_dict()


IMAGE_AFTER_BACKTICKS = ["![a](https://e/a.png)```", "\n![b](https://e/b.png)"]


def test_image_after_backticks_is_not_taken_for_a_fence():
    conversation = ()
    for index, piece in enumerate(IMAGE_AFTER_BACKTICKS):
        conversation = merge(conversation, text_delta(piece, f"2025-01-01T00:00:0{index}.000Z"))
    assert [part.type for part in conversation[0].parts] == [
        "assistant-attachment",
        "text",
        "assistant-attachment",
    ]
    assert conversation[0].parts[1].message == "```\n"


@pytest.mark.parametrize(
    "pieces",
    [
        IMAGE_AFTER_BACKTICKS,
        ["See ![c](https://e/c.png)", " and\n```\n", "![d](https://e/d.png)\n```", " end"],
        ["![x](", "https://e/x.png", ")", "![y](local/y.png)", " tail"],
    ],
)
def test_merge_and_chunk_merger_agree(pieces):
    merger = ChunkMerger()
    conversation = ()
    for index, piece in enumerate(pieces):
        chunk = text_delta(piece, f"2025-01-01T00:00:0{index}.000Z")
        conversation = merge(conversation, chunk)
        merger.apply(chunk)
    assert merger.conversation[0].parts == conversation[0].parts
    assert merger.run == conversation[0].text_run


def test_stored_transcript_resumes_run_after_image():
    first = text_delta(IMAGE_AFTER_BACKTICKS[0], T0)
    second = text_delta(IMAGE_AFTER_BACKTICKS[1], T1)
    live = merge(merge((), first), second)

    restored = load_conversation(dump_conversation(merge((), first)))
    resumed = merge(restored, second)
    assert dump_conversation(resumed) == dump_conversation(live)


def test_thinking_delta_coalesces_and_ends_text_run():
    merger = ChunkMerger()
    merger.apply(text_delta("Hi", T0))
    merger.apply(ProgressChunk(part=ThinkingDelta(message="hmm", started_at=T1)))
    merger.apply(ProgressChunk(part=ThinkingDelta(message=" ok", started_at=T2)))
    assert merger.run is None

    parts = merger.conversation[0].parts
    assert parts[1] == ThinkingPart(message="hmm ok", started_at=T1, completed_at=T2)

    merger.apply(text_delta("again", T2))
    parts = merger.conversation[0].parts
    assert [part.type for part in parts] == ["text", "thinking", "text"]
    assert parts[2].message == "again"


def test_thinking_delta_without_timestamp_uses_now():
    conversation = merge((), ProgressChunk(part=ThinkingDelta(message="hmm")))
    assert conversation[0].parts[0].started_at is not None


def test_tool_call_is_upserted_by_id():
    merger = ChunkMerger()
    merger.apply(tool_call(input={"q": "weather"}))
    merger.apply(text_delta("between", T1))
    merger.apply(tool_call(status="completed", output={"result": "sunny"}))

    parts = merger.conversation[0].parts
    assert len(parts) == 2
    call = parts[0]
    assert call.status == "completed"
    assert call.input == {"q": "weather"}
    assert call.output == {"result": "sunny"}


def test_tool_call_merge_overwrites_but_never_clears():
    existing = ToolCallPart(tool_name="search", tool_call_id="c", status="loading", input={"q": 1})
    update = ToolCallPart(tool_name="search", tool_call_id="c", status="ready", input=None)
    merged = merge_tool_call(existing, update)
    assert merged.status == "ready"
    assert merged.input == {"q": 1}


def test_tool_call_ends_text_run():
    merger = ChunkMerger()
    merger.apply(text_delta("a", T0))
    merger.apply(tool_call())
    merger.apply(text_delta("b", T1))
    assert [part.type for part in merger.conversation[0].parts] == ["text", "tool-call", "text"]


def test_tool_call_merge_is_idempotent():
    chunk = tool_call(status="ready", input={"x": 1})
    once = merge((), chunk)
    twice = merge(once, chunk)
    assert twice[0].to_json_dict() == once[0].to_json_dict()


def test_full_parts_are_appended():
    attachment = AttachmentPart(url="https://e/a.png", started_at=T0)
    merger = ChunkMerger()
    merger.apply(text_delta("x", T0))
    merger.apply(ProgressChunk(part=attachment))
    merger.apply(text_delta("y", T1))
    parts = merger.conversation[0].parts
    assert parts[1] == attachment
    assert [part.type for part in parts] == ["text", "assistant-attachment", "text"]


def test_cost_is_last_write_wins():
    conversation = merge((), ProgressChunk(cost=0.5))
    conversation = merge(conversation, text_delta("a"))
    assert conversation[0].cost == 0.5
    conversation = merge(conversation, ProgressChunk(cost=0.75))
    assert conversation[0].cost == 0.75


def test_chunk_after_user_message_opens_new_assistant_message():
    user = UserMessage(content=(UserText(message="hi"),))
    conversation = merge((user,), text_delta("hello"))
    assert len(conversation) == 2
    assert conversation[0] is user
    assert isinstance(conversation[1], AssistantMessage)


def test_merge_shares_untouched_messages_and_never_mutates_input():
    user = UserMessage(content=(UserText(message="hi"),))
    first = merge((user,), text_delta("a", T0))
    second = merge(first, text_delta("b", T1))
    assert second[0] is first[0]
    assert first[1].parts[0].message == "a"
    assert second[1].parts[0].message == "ab"


def test_messages_are_immutable():
    conversation = merge((), text_delta("a"))
    with pytest.raises(ValidationError):
        conversation[0].parts = ()


def test_stale_run_is_rebuilt_from_tail():
    stale = TextRun(buffer="zzz", start_index=5, started_at=T0)
    message = AssistantMessage(parts=(TextPart(message="a", started_at=T0),)).with_text_run(stale)
    conversation = merge((message,), text_delta("b", T1))
    assert conversation[0].parts == (TextPart(message="ab", started_at=T0, completed_at=T1),)


def test_ended_run_is_not_resumed():
    merger = ChunkMerger()
    merger.apply(text_delta("x", T0))
    merger.apply(ProgressChunk(part=TextPart(message="y", started_at=T1)))
    assert merger.run is None
    merger.apply(text_delta("z", T2))
    assert [part.message for part in merger.conversation[0].parts] == ["x", "y", "z"]


def test_loaded_transcript_continues_streaming():
    stored = [
        {"role": "user", "content": [{"type": "text", "message": "hi"}]},
        {"role": "assistant", "parts": [{"type": "text", "message": "Hel", "startedAt": T0}]},
    ]
    merger = ChunkMerger(load_conversation(stored))
    merger.apply(text_delta("lo", T1))
    assert merger.conversation[1].parts == (
        TextPart(message="Hello", started_at=T0, completed_at=T1),
    )


def _sample_part(part_type):
    samples = {
        TextDelta: TextDelta(message="t", started_at=T0),
        ThinkingDelta: ThinkingDelta(message="t", started_at=T0),
        ToolCallPart: ToolCallPart(tool_name="x", tool_call_id="1", status="loading"),
        TextPart: TextPart(message="t", started_at=T0),
        ThinkingPart: ThinkingPart(message="t", started_at=T0),
        AttachmentPart: AttachmentPart(url="https://e/a.png"),
    }
    return samples[part_type]


@pytest.mark.parametrize("part_type", get_args(get_args(ChunkPart)[0]))
def test_every_chunk_part_variant_is_handled(part_type):
    conversation = merge((), ProgressChunk(part=_sample_part(part_type)))
    assert len(conversation[0].parts) == 1


_chunks = st.one_of(
    st.builds(
        lambda message: ProgressChunk(part=TextDelta(message=message, started_at=T1)),
        st.sampled_from(["a", " ", "![x](", "https://e/x.png", ")", "\n```\n", "b"]),
    ),
    st.builds(
        lambda message: ProgressChunk(part=ThinkingDelta(message=message, started_at=T1)),
        st.sampled_from(["think", "more"]),
    ),
    st.builds(
        lambda call_id, status: ProgressChunk(
            part=ToolCallPart(tool_name="tool", tool_call_id=call_id, status=status)
        ),
        st.sampled_from(["c1", "c2", "c3"]),
        st.sampled_from(["loading", "ready", "completed", "error"]),
    ),
)


@settings(max_examples=100)
@given(chunks=st.lists(_chunks, max_size=25))
def test_stream_keeps_one_open_message_without_duplicate_tool_ids(chunks):
    merger = ChunkMerger()
    for chunk in chunks:
        conversation = merger.apply(chunk)
        assert len(conversation) == 1
        ids = [part.tool_call_id for part in conversation[0].parts if isinstance(part, ToolCallPart)]
        assert len(ids) == len(set(ids))


_text_pieces = st.sampled_from(
    ["a", " ", "\n", "![x](https://e/", "x.png", ")", "\n```\n", "```", "b"]
)


@settings(max_examples=100)
@given(pieces=st.lists(_text_pieces, min_size=1, max_size=15))
def test_reloading_between_chunks_matches_uninterrupted_stream(pieces):
    live = ChunkMerger()
    stored = []
    for index, piece in enumerate(pieces):
        chunk = text_delta(piece, f"2025-01-01T00:00:{index:02d}.000Z")
        live.apply(chunk)
        stored = dump_conversation(merge(load_conversation(stored), chunk))
        assert stored == dump_conversation(live.conversation)
