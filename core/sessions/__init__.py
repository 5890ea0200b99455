"""
Live session package.

Import concrete functionality from explicit submodules:
- `core.sessions.events` for streaming update envelopes
- `core.sessions.manager` for the per-session registry and locking
- `core.sessions.broadcaster` for subscriber fan-out
- `core.sessions.stream_handler` for routing agent updates
"""

__all__: list[str] = []
