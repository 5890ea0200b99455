"""
Core system constants.

Basic system constants that are used across multiple modules.

Only place true invariants here (fixed URL prefixes, tool names, bounds, etc.).
Deployment-specific paths and defaults live in core.runtime.paths; use those
helpers or RuntimeConfig rather than adding env-derived values here.
"""

from __future__ import annotations


# ==============================================================================
# Attachment URLs
# ==============================================================================

# Endpoint the UI uses to stream local files referenced by the assistant
ATTACHMENT_VIEW_PATH = "/api/v1/attachments/view"

# Targets that are already absolute and must not be rewritten
REMOTE_URL_PREFIXES = ("http://", "https://")

# Targets that already point at the internal API
INTERNAL_URL_PREFIXES = ("/v1/", "/api/")

# ==============================================================================
# Markdown scanning
# ==============================================================================

# Minimum backtick run that opens a fenced code block
FENCE_MIN_BACKTICKS = 3

# Maximum indentation allowed before a fence marker
FENCE_MAX_INDENT = 3

# ==============================================================================
# Interactive tool results
# ==============================================================================

ASK_QUESTION_TOOL = "ask_question"
MANAGE_CONNECTIONS_TOOL = "COMPOSIO_MANAGE_CONNECTIONS"

# Connection status that still needs the user to finish authorization
CONNECTION_STATUS_INITIATED = "initiated"

# ==============================================================================
# Sessions
# ==============================================================================

# Updates buffered per event-stream subscriber before the oldest is dropped
DEFAULT_SUBSCRIBER_QUEUE_SIZE = 256

# Activity log rotation
ACTIVITY_LOG_FILENAME = "activity.log"
ACTIVITY_LOG_MAX_BYTES = 1_048_576
ACTIVITY_LOG_BACKUP_COUNT = 5
