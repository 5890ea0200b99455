"""
Runtime bootstrap for the transcript engine.

Provides a single entry point for initializing runtime services with
configuration validation and lifecycle management.
"""

from datetime import datetime, timezone

from core.logger import UnifiedLogger
from core.sessions.broadcaster import UpdateBroadcaster
from core.sessions.manager import SessionManager
from core.sessions.stream_handler import SessionStreamHandler
from core.settings import validate_settings
from .config import RuntimeConfig, RuntimeConfigError
from .context import RuntimeContext
from .state import next_boot_id, set_runtime_context


async def bootstrap_runtime(config: RuntimeConfig) -> RuntimeContext:
    """
    Bootstrap the runtime and register it as the global context.

    Args:
        config: Runtime configuration with paths and settings

    Returns:
        RuntimeContext with initialized services

    Raises:
        RuntimeConfigError: If settings validation reports errors
        RuntimeStartupError: If service initialization fails
    """
    logger = UnifiedLogger(tag="runtime-bootstrap")
    logger.info("Starting runtime bootstrap", system_root=str(config.system_root))

    config_status = validate_settings()
    if not config_status.is_healthy:
        error_messages = [f"{issue.name}: {issue.message}" for issue in config_status.errors]
        logger.error(
            "Critical configuration validation failed",
            metadata={"errors": error_messages},
        )
        raise RuntimeConfigError("; ".join(error_messages))

    for warning in config_status.warnings:
        logger.warning(
            warning.message,
            metadata={"issue": warning.name, "severity": warning.severity},
        )

    try:
        session_manager = SessionManager()
        broadcaster = UpdateBroadcaster(queue_size=config.subscriber_queue_size)
        runtime_context = RuntimeContext(
            config=config,
            logger=logger,
            session_manager=session_manager,
            broadcaster=broadcaster,
            stream_handler=SessionStreamHandler(session_manager, broadcaster),
            boot_id=next_boot_id(),
            started_at=datetime.now(timezone.utc),
        )
        set_runtime_context(runtime_context)
    except Exception as e:
        logger.error(f"Runtime bootstrap failed: {e}")
        raise RuntimeStartupError(f"Failed to bootstrap runtime: {e}") from e

    logger.activity(
        "Runtime bootstrap completed successfully",
        session_id="system",
        metadata=runtime_context.get_runtime_summary(),
    )
    return runtime_context


class RuntimeBootstrapError(Exception):
    """Base exception for runtime bootstrap failures."""
    pass


class RuntimeStartupError(RuntimeBootstrapError):
    """Raised when service initialization fails during bootstrap."""
    pass
