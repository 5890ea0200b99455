"""
Runtime-aware path helpers.

Provides centralized access to the system root, preferring the runtime
context when available and falling back to container defaults.
"""

import os
from pathlib import Path

from core.runtime.state import get_runtime_context, has_runtime_context

# Default root (env-driven). Kept here to discourage direct import elsewhere.
_DEFAULT_SYSTEM_ROOT = "/app/system"


def get_system_root() -> Path:
    """Return the active system root (settings, secrets, logs)."""
    if has_runtime_context():
        return Path(get_runtime_context().config.system_root)
    return Path(os.getenv("CONTAINER_SYSTEM_ROOT", _DEFAULT_SYSTEM_ROOT))
