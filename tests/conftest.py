import sys
from pathlib import Path

import pytest

# Ensure the `placesync` package is importable when running pytest from the repository root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from placesync.core.config import Settings  # noqa: E402


@pytest.fixture
def settings():
    return Settings(
        google_api_key="test-key",
        database_url="sqlite:///:memory:",
        retry_delay=0,
        rate_limit_delay=0,
        page_token_delay=0,
    )


@pytest.fixture
def no_sleep(monkeypatch):
    """Record sleeps instead of blocking."""
    import time

    sleeps = []
    monkeypatch.setattr(time, "sleep", lambda seconds: sleeps.append(seconds))
    return sleeps
