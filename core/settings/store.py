"""
Settings file loader and helpers.

Provides typed access to `system/settings.yaml` general settings (logging,
debug output, event stream sizing).
"""

from __future__ import annotations

import shutil
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel, Field, ValidationError

from core.runtime.paths import get_system_root


SETTINGS_TEMPLATE = Path(__file__).parent / "settings.template.yaml"


class SettingsEntry(BaseModel):
    """Single general settings entry."""

    value: Any
    description: str | None = None
    restart_required: bool = False


class SettingsFile(BaseModel):
    """Root schema for settings.yaml content."""

    settings: Dict[str, SettingsEntry] = Field(default_factory=dict)


def _resolve_settings_path() -> Path:
    """Determine the active settings file path."""
    return get_system_root() / "settings.yaml"


def _ensure_settings_file(target_path: Path) -> None:
    """Ensure the settings file exists at the target path, seeding from template if missing."""
    target_path.parent.mkdir(parents=True, exist_ok=True)

    if target_path.exists():
        return

    if not SETTINGS_TEMPLATE.exists():
        raise FileNotFoundError(f"Default settings template missing: {SETTINGS_TEMPLATE}")

    shutil.copyfile(SETTINGS_TEMPLATE, target_path)


@lru_cache(maxsize=1)
def load_settings() -> SettingsFile:
    """
    Load settings.yaml configuration with caching.

    Returns:
        SettingsFile model for general settings.
    """
    settings_file = get_active_settings_path()

    with open(settings_file, "r", encoding="utf-8") as handle:
        raw_data = yaml.safe_load(handle) or {}

    if raw_data.get("settings") is None:
        raw_data["settings"] = {}

    try:
        return SettingsFile.model_validate(raw_data)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings.yaml configuration: {exc}") from exc


def refresh_settings_cache() -> None:
    """Clear the settings cache so future calls reload from disk."""
    load_settings.cache_clear()  # type: ignore[attr-defined]


def get_active_settings_path() -> Path:
    """Return the active settings file path, ensuring it exists."""
    path = _resolve_settings_path()
    _ensure_settings_file(path)
    return path


def get_general_settings() -> Dict[str, SettingsEntry]:
    """Get general settings section."""
    return load_settings().settings


def get_setting_value(name: str, default: Any = None) -> Any:
    """Return a general setting's value, or `default` when it is not configured."""
    entry = get_general_settings().get(name)
    if entry is None or entry.value is None:
        return default
    return entry.value
