"""
Shared markdown chunking helpers.

This package splits streamed assistant text into ordered text/image chunks and
normalizes the image targets it finds.
"""

from .attachments import encode_uri_component, resolve_attachment_url
from .markdown import MarkdownChunk, parse_markdown_chunks

__all__ = [
    "MarkdownChunk",
    "parse_markdown_chunks",
    "encode_uri_component",
    "resolve_attachment_url",
]
