"""
Secrets store utilities.

Read-only access to API tokens kept in a YAML file next to the settings,
with environment variables taking precedence so deployments can inject
secrets without touching disk.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import yaml

from core.runtime.paths import get_system_root


SECRETS_PATH_ENV = "SECRETS_PATH"


def _resolve_secrets_path() -> Path:
    """Determine the active secrets file path."""
    override = os.environ.get(SECRETS_PATH_ENV)
    if override:
        return Path(override)
    return get_system_root() / "secrets.yaml"


def load_secrets() -> Dict[str, str]:
    """
    Load secrets with non-empty values from disk.

    Returns:
        Dictionary mapping secret names to values. Missing file means no secrets.
    """
    path = _resolve_secrets_path()
    if not path.exists():
        return {}

    raw_text = path.read_text(encoding="utf-8")
    if not raw_text.strip():
        return {}

    data = yaml.safe_load(raw_text) or {}
    if not isinstance(data, dict):
        raise ValueError("Secrets file must contain a mapping of key/value pairs.")

    secrets: Dict[str, str] = {}
    for key, value in data.items():
        if not isinstance(key, str):
            raise ValueError("Secret names must be strings.")
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        if not isinstance(value, str):
            raise ValueError(f"Secret '{key}' must be stored as a string.")
        secrets[key] = value.strip()
    return secrets


def get_secret_value(name: str) -> Optional[str]:
    """Return the value for a secret from the environment or the secrets file, if set."""
    if not name:
        return None

    env_value = os.environ.get(name)
    if env_value and env_value.strip():
        return env_value.strip()

    return load_secrets().get(name)


def secret_has_value(name: str) -> bool:
    """Return True when the secret exists and has non-empty value."""
    return bool(get_secret_value(name))
