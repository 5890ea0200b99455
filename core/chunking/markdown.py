"""
Markdown chunk parser for ordered text/image parts.

Image tags are only recognized in prose: fenced code blocks and inline code
spans are passed through untouched as text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Literal, Optional

from core.constants import FENCE_MAX_INDENT, FENCE_MIN_BACKTICKS

from .attachments import resolve_attachment_url


ChunkKind = Literal["text", "image"]

_IMAGE_TOKEN_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")

_FENCE_OPEN_PATTERN = re.compile(
    rf" {{0,{FENCE_MAX_INDENT}}}(`{{{FENCE_MIN_BACKTICKS},}})[^`\n]*(?:\n|$)"
)


@dataclass(frozen=True)
class MarkdownChunk:
    kind: ChunkKind
    text: str = ""
    image_ref: Optional[str] = None
    url: Optional[str] = None
    alt_text: Optional[str] = None
    start: int = 0
    end: int = 0


def _fence_close_pattern(fence_length: int) -> re.Pattern[str]:
    return re.compile(rf" {{0,{FENCE_MAX_INDENT}}}`{{{fence_length},}}[ \t]*(?:\n|$)")


def _skip_fenced_block(markdown_text: str, opening: re.Match[str]) -> int:
    """Return the offset just past the fence closing `opening`, or the end of input."""
    closing = _fence_close_pattern(len(opening.group(1)))
    length = len(markdown_text)
    position = opening.end()
    while position < length:
        match = closing.match(markdown_text, position)
        if match:
            return match.end()
        newline = markdown_text.find("\n", position)
        if newline == -1:
            return length
        position = newline + 1
    return length


def _skip_inline_code(markdown_text: str, position: int) -> int:
    """
    Skip an inline code span starting at `position`.

    A run of N backticks only opens a span when a run of exactly N backticks
    follows on the same line. Otherwise only the run itself is skipped, as
    literal text.
    """
    run_end = position
    while run_end < len(markdown_text) and markdown_text[run_end] == "`":
        run_end += 1
    run_length = run_end - position

    line_end = markdown_text.find("\n", run_end)
    if line_end == -1:
        line_end = len(markdown_text)

    closing = re.compile(rf"(?<!`)`{{{run_length}}}(?!`)")
    match = closing.search(markdown_text, run_end, line_end)
    if match:
        return match.end()
    return run_end


def _append_text(chunks: List[MarkdownChunk], markdown_text: str, start: int, end: int) -> None:
    if end <= start:
        return
    chunks.append(
        MarkdownChunk(
            kind="text",
            text=markdown_text[start:end],
            start=start,
            end=end,
        )
    )


def parse_markdown_chunks(markdown_text: str) -> List[MarkdownChunk]:
    """
    Parse markdown into ordered text and image chunks.

    Supports standard markdown image tags: ![alt](path). Image targets are
    resolved into UI-loadable URLs. Tags inside fenced code blocks (including
    a fence left open at the end of the input) or inline code spans stay text.
    An incomplete tag is kept as literal text, so re-parsing a longer version
    of the same input only changes chunks from the point the new text affects.
    """
    if not markdown_text:
        return []

    chunks: List[MarkdownChunk] = []
    length = len(markdown_text)
    text_start = 0
    cursor = 0

    while cursor < length:
        if cursor == 0 or markdown_text[cursor - 1] == "\n":
            fence = _FENCE_OPEN_PATTERN.match(markdown_text, cursor)
            if fence:
                cursor = _skip_fenced_block(markdown_text, fence)
                continue

        char = markdown_text[cursor]
        if char == "`":
            cursor = _skip_inline_code(markdown_text, cursor)
            continue

        if char == "!":
            match = _IMAGE_TOKEN_PATTERN.match(markdown_text, cursor)
            if match:
                _append_text(chunks, markdown_text, text_start, cursor)
                alt_text, image_ref = match.group(1), match.group(2)
                chunks.append(
                    MarkdownChunk(
                        kind="image",
                        image_ref=image_ref,
                        url=resolve_attachment_url(image_ref),
                        alt_text=alt_text or None,
                        start=cursor,
                        end=match.end(),
                    )
                )
                cursor = text_start = match.end()
                continue

        cursor += 1

    _append_text(chunks, markdown_text, text_start, length)
    return chunks
