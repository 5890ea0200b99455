"""
Attachment URL normalization for assistant-produced image references.
"""

from __future__ import annotations

from urllib.parse import quote

from core.constants import ATTACHMENT_VIEW_PATH, INTERNAL_URL_PREFIXES, REMOTE_URL_PREFIXES


# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    """Percent-encode a string the way browsers encode a URI component."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def resolve_attachment_url(path_or_url: str) -> str:
    """
    Turn a raw image target into a URL the UI can load.

    Absolute http(s) URLs and internal API paths pass through unchanged.
    Anything else is treated as a local path and routed through the
    attachment viewer endpoint.
    """
    if path_or_url.startswith(REMOTE_URL_PREFIXES + INTERNAL_URL_PREFIXES):
        return path_or_url
    return f"{ATTACHMENT_VIEW_PATH}?path={encode_uri_component(path_or_url)}"
