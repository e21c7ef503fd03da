"""
Pytest configuration for redmodel.

Provides fixtures for:
- An in-memory stand-in for the ``redis.asyncio`` client (unit tests)
- A "food" record set and the schema it uses
- Settings that do not read the developer's environment
"""

from __future__ import annotations

from typing import Generator

import pytest

from redmodel.config import Settings, get_settings
from redmodel.odm.record_set import RecordSet
from tests.fakes import FOOD_SCHEMA, TEST_ROOT, FakeRedis


@pytest.fixture
def client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def food(client: FakeRedis) -> RecordSet:
    return RecordSet(client, "food", FOOD_SCHEMA, root=TEST_ROOT)


@pytest.fixture
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[Settings, None, None]:
    """
    Settings built from defaults only.

    Clears the variables redmodel reads and the ``get_settings`` cache.
    """
    for var in (
        "REDIS_URL",
        "REDIS_NODES",
        "REDIS_DB",
        "REDIS_KEY_ROOT",
        "VIEW_CACHE_SIZE",
        "VIEW_REPOPULATE_CONCURRENCY",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield Settings(_env_file=None)
    get_settings.cache_clear()
