"""
Runtime context for the transcript engine.

Provides centralized access to the session registry, update fan-out and
stream handler, and manages their lifecycle.
"""

from dataclasses import dataclass
from datetime import datetime

from core.logger import UnifiedLogger
from core.sessions.broadcaster import UpdateBroadcaster
from core.sessions.manager import SessionManager
from core.sessions.stream_handler import SessionStreamHandler
from .config import RuntimeConfig


@dataclass
class RuntimeContext:
    """
    Central runtime context for transcript engine services.

    Attributes:
        config: Runtime configuration
        logger: Unified logger for runtime operations
        session_manager: Registry of live session transcripts
        broadcaster: Subscriber fan-out for handled updates
        stream_handler: Router applying agent updates to sessions
        boot_id: Sequence number of this bootstrap within the process
        started_at: When the runtime was bootstrapped
    """

    config: RuntimeConfig
    logger: UnifiedLogger
    session_manager: SessionManager
    broadcaster: UpdateBroadcaster
    stream_handler: SessionStreamHandler
    boot_id: int
    started_at: datetime

    async def shutdown(self):
        """Shut down runtime services and clear the global context."""
        self.logger.info("Shutting down runtime context", boot_id=self.boot_id)
        runtime_state.clear_runtime_context()

    def get_runtime_summary(self) -> dict:
        """
        Get runtime context summary for diagnostics.

        Returns basic information about the runtime state without
        exposing internal objects.
        """
        return {
            "boot_id": self.boot_id,
            "started_at": self.started_at.isoformat(),
            "system_root": str(self.config.system_root),
            "subscriber_queue_size": self.config.subscriber_queue_size,
            "features": self.config.features,
            "log_level": self.config.log_level,
        }


from . import state as runtime_state
