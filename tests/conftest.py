"""
Shared test configuration.

Settings are cached process-wide; every test starts from a clean cache and
without MONGOBUILDER_* variables leaking in from the environment.
"""

import os
from datetime import datetime, timezone

import pytest

from mongobuilder.config import get_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Reset cached settings and strip MONGOBUILDER_* env vars."""
    for name in list(os.environ):
        if name.startswith("MONGOBUILDER_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def utc():
    return timezone.utc


@pytest.fixture
def fixed_now():
    """2024-03-15 18:30:45.250 UTC."""
    return datetime(2024, 3, 15, 18, 30, 45, 250000, tzinfo=timezone.utc)
