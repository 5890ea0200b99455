"""
Application settings and configuration health utilities.

Provides a single typed interface for environment-driven settings along with
helpers to diagnose configuration problems before the runtime starts.
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.constants import DEFAULT_SUBSCRIBER_QUEUE_SIZE
from core.settings.store import SettingsEntry, get_general_settings, get_setting_value
from core.settings.secrets_store import secret_has_value


class SettingsError(Exception):
    """Raised when application settings are invalid or unavailable."""


class ConfigurationIssue(BaseModel):
    """Represents a configuration validation issue."""

    name: str
    message: str
    severity: str  # 'error' or 'warning'


class ConfigurationStatus(BaseModel):
    """Aggregated configuration validation results."""

    issues: List[ConfigurationIssue] = Field(default_factory=list)

    @property
    def errors(self) -> List[ConfigurationIssue]:
        """Return error-severity issues."""
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> List[ConfigurationIssue]:
        """Return warning-severity issues."""
        return [issue for issue in self.issues if issue.severity == "warning"]

    @property
    def is_healthy(self) -> bool:
        """Return True when no error-severity issues exist."""
        return not self.errors

    def add_issue(self, name: str, message: str, severity: str = "error") -> None:
        """Append an issue to the collection."""
        self.issues.append(ConfigurationIssue(name=name, message=message, severity=severity))


class AppSettings(BaseSettings):
    """
    Infrastructure settings loaded from environment variables.

    Only infrastructure-level values live in the environment. Secrets are
    handled separately via the secrets store.
    """

    model_config = SettingsConfigDict(env_file=None, extra="ignore", case_sensitive=True)

    system_root: Path = Field(default=Path("/app/system"), alias="CONTAINER_SYSTEM_ROOT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("system_root", mode="before")
    @classmethod
    def _expand_system_root(cls, value):
        """Expand user paths to absolute Path instances."""
        if value in (None, ""):
            return Path("/app/system")
        if isinstance(value, Path):
            return value.expanduser()
        return Path(value).expanduser()


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Load application settings from environment variables.
    """
    return AppSettings()


def refresh_app_settings_cache() -> None:
    """Clear cached settings so future calls reload from environment."""
    get_app_settings.cache_clear()  # type: ignore[attr-defined]


def get_subscriber_queue_size() -> int:
    """Return the configured event-stream buffer size, falling back to the default."""
    value = get_setting_value("subscriber_queue_size", DEFAULT_SUBSCRIBER_QUEUE_SIZE)
    try:
        return int(value)
    except (TypeError, ValueError):
        return DEFAULT_SUBSCRIBER_QUEUE_SIZE


def validate_settings(
    general_settings: Optional[Dict[str, SettingsEntry]] = None,
) -> ConfigurationStatus:
    """
    Validate core configuration requirements.

    Args:
        general_settings: Optional pre-loaded general settings section.

    Returns:
        ConfigurationStatus describing any issues discovered.
    """
    settings = general_settings if general_settings is not None else get_general_settings()
    status = ConfigurationStatus()

    logfire_entry = settings.get("logfire")
    if logfire_entry is not None and bool(logfire_entry.value) and not secret_has_value("LOGFIRE_TOKEN"):
        status.add_issue(
            name="LOGFIRE_TOKEN",
            message="Logfire is enabled but no LOGFIRE_TOKEN secret is configured; traces stay local.",
            severity="warning",
        )

    queue_entry = settings.get("subscriber_queue_size")
    if queue_entry is not None:
        try:
            queue_size = int(queue_entry.value)
        except (TypeError, ValueError):
            queue_size = 0
        if queue_size < 1:
            status.add_issue(
                name="subscriber_queue_size",
                message=f"subscriber_queue_size must be a positive integer, got {queue_entry.value!r}.",
            )

    return status
