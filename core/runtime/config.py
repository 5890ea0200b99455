"""
Runtime configuration for transcript engine bootstrap.

Provides structured configuration for system initialization with
validation, defaults, and path management.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any

from core.constants import DEFAULT_SUBSCRIBER_QUEUE_SIZE


@dataclass
class RuntimeConfig:
    """
    Configuration for runtime bootstrap.

    Attributes:
        system_root: Path for system data (settings, secrets, activity log)
        subscriber_queue_size: Updates buffered per event-stream subscriber
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        features: Feature flags and configuration overrides
    """

    system_root: Path
    subscriber_queue_size: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE
    log_level: str = "INFO"
    features: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.system_root, str):
            self.system_root = Path(self.system_root)

        try:
            self.system_root.mkdir(parents=True, exist_ok=True)
        except (OSError, PermissionError) as e:
            raise RuntimeConfigError(f"Cannot create required directories: {e}")

        if self.subscriber_queue_size < 1:
            raise RuntimeConfigError("subscriber_queue_size must be at least 1")

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level.upper() not in valid_levels:
            raise RuntimeConfigError(f"Invalid log_level '{self.log_level}'. Must be one of: {valid_levels}")

    @classmethod
    def for_production(
        cls, system_root: str, subscriber_queue_size: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE, log_level: str = "INFO"
    ) -> "RuntimeConfig":
        """Create production configuration with standard settings."""
        return cls(
            system_root=Path(system_root),
            subscriber_queue_size=subscriber_queue_size,
            log_level=log_level,
        )

    @classmethod
    def for_testing(cls, run_path: Path) -> "RuntimeConfig":
        """Create an isolated configuration rooted in a scratch directory."""
        return cls(
            system_root=run_path / "system",
            log_level="DEBUG",
            features={"testing": True},
        )


class RuntimeConfigError(Exception):
    """Raised when runtime configuration is invalid."""
    pass
