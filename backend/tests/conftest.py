"""
Shared test configuration.

The environment is pinned before ``finscope`` is imported so settings,
the service container and the app all come up in mock mode with no
banking latency and no background scheduler.
"""

from __future__ import annotations

import os

os.environ["USE_MOCK_DATA"] = "true"
os.environ["BANKING_LATENCY_MIN_MS"] = "0"
os.environ["BANKING_LATENCY_MAX_MS"] = "0"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["NODE_ENV"] = "test"
for key in ("ALPHA_VANTAGE_API_KEY", "FRED_API_KEY", "NEWS_API_KEY", "HUGGING_FACE_API_KEY"):
    os.environ.pop(key, None)

import pytest  # noqa: E402

from finscope.cache import TTLCache  # noqa: E402
from finscope.config import Settings  # noqa: E402
from finscope.services import build_services  # noqa: E402


@pytest.fixture
def cache():
    return TTLCache()


@pytest.fixture
def services(cache):
    """Fresh mock-mode container with its own cache."""
    settings = Settings(use_mock_data=True, banking_latency_min_ms=0, banking_latency_max_ms=0)
    return build_services(settings, cache=cache)
