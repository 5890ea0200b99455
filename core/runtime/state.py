"""
Process-wide runtime context holder.

Only one context is active at a time; tests clear it between runs.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .context import RuntimeContext


_runtime_context: Optional["RuntimeContext"] = None
_runtime_boot_counter = 0


def set_runtime_context(context: Optional["RuntimeContext"]) -> None:
    """
    Install the active runtime context, or clear it with None.

    Raises:
        RuntimeStateError: If a context is already installed
    """
    global _runtime_context

    if context is not None and _runtime_context is not None:
        raise RuntimeStateError(
            "Runtime context already exists; clear it before bootstrapping again."
        )

    _runtime_context = context


def get_runtime_context() -> "RuntimeContext":
    """
    Get the current runtime context.

    Gives request handlers access to the session manager and stream handler
    without importing main.

    Raises:
        RuntimeStateError: If bootstrap_runtime() has not run
    """
    if _runtime_context is None:
        raise RuntimeStateError(
            "No runtime context available. Ensure bootstrap_runtime() "
            "has been called before accessing sessions."
        )

    return _runtime_context


def has_runtime_context() -> bool:
    return _runtime_context is not None


def clear_runtime_context() -> None:
    set_runtime_context(None)


def next_boot_id() -> int:
    """Return the next runtime boot sequence number."""
    global _runtime_boot_counter
    _runtime_boot_counter += 1
    return _runtime_boot_counter


class RuntimeStateError(Exception):
    """Raised when runtime context state is invalid or unavailable."""
    pass
