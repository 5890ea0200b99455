"""
Conversation transcript engine.

Import concrete functionality from explicit submodules:
- `core.conversation.models` for transcript shapes and JSON helpers
- `core.conversation.merger` for the streaming chunk merge
- `core.conversation.messages` for non-streaming transcript edits
- `core.conversation.questions` for interactive question extraction
"""

__all__: list[str] = []
