"""
Shared fixtures for the transcript engine test suite.

The system root must point at a writable scratch directory before any core
module resolves settings, secrets or the activity log path.
"""

import os
import tempfile

os.environ["CONTAINER_SYSTEM_ROOT"] = tempfile.mkdtemp(prefix="transcript-system-")
os.environ.pop("LOGFIRE_TOKEN", None)

import pytest  # noqa: E402

from core.runtime.state import clear_runtime_context  # noqa: E402
from core.settings.store import refresh_settings_cache  # noqa: E402


T0 = "2025-01-01T00:00:00.000Z"
T1 = "2025-01-01T00:00:01.000Z"
T2 = "2025-01-01T00:00:02.000Z"


@pytest.fixture(autouse=True)
def _isolated_runtime():
    """Every test starts without a runtime context and with fresh settings."""
    clear_runtime_context()
    refresh_settings_cache()
    yield
    clear_runtime_context()
    refresh_settings_cache()
