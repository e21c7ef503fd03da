from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from redmodel.config import Settings
from redmodel.infrastructure import redis_factory
from redmodel.infrastructure.redis_factory import (
    ClientManager,
    create_client,
    normalize_nodes,
    redis_key,
)

from tests.fakes import FakeRedis


def test_normalize_nodes_accepts_string_list_or_nothing() -> None:
    assert normalize_nodes("10.0.0.1:6380") == ["10.0.0.1:6380"]
    assert normalize_nodes(["a:1", "", "b:2"]) == ["a:1", "b:2"]
    assert normalize_nodes(None) == ["127.0.0.1:6379"]
    assert normalize_nodes([]) == ["127.0.0.1:6379"]


def test_create_client_uses_first_node_and_db() -> None:
    settings = Settings(redis_url=None, redis_nodes=["cache.local:6380", "other:6379"], redis_db=2)

    client = create_client(settings)

    kwargs = client.connection_pool.connection_kwargs
    assert kwargs["host"] == "cache.local"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 2
    assert kwargs["decode_responses"] is True


def test_create_client_prefers_url() -> None:
    client = create_client(Settings(redis_url="redis://example:7000/5", redis_nodes=["ignored:1"]))

    kwargs = client.connection_pool.connection_kwargs
    assert (kwargs["host"], kwargs["port"], kwargs["db"]) == ("example", 7000, 5)


def test_redis_key_prefixes_parts() -> None:
    assert redis_key("sessions", 42, prefix="app") == "app:sessions:42"


class _FlakyClient(FakeRedis):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures

    async def ping(self) -> bool:
        self.calls.append("ping")
        if self.failures:
            self.failures -= 1
            raise RedisConnectionError("connection refused")
        return True


@pytest.mark.asyncio
async def test_connect_client_retries_until_ping_succeeds(monkeypatch: pytest.MonkeyPatch) -> None:
    flaky = _FlakyClient(failures=1)
    monkeypatch.setattr(redis_factory, "create_client", lambda settings: flaky)
    monkeypatch.setattr(redis_factory, "wait_exponential", lambda **_: lambda retry_state: 0)

    client = await redis_factory.connect_client(Settings(redis_connect_attempts=3))

    assert client is flaky
    assert flaky.calls == ["ping", "ping"]
    assert not flaky.closed


@pytest.mark.asyncio
async def test_connect_client_closes_and_raises_after_last_attempt(monkeypatch: pytest.MonkeyPatch) -> None:
    flaky = _FlakyClient(failures=5)
    monkeypatch.setattr(redis_factory, "create_client", lambda settings: flaky)
    monkeypatch.setattr(redis_factory, "wait_exponential", lambda **_: lambda retry_state: 0)

    with pytest.raises(RedisConnectionError):
        await redis_factory.connect_client(Settings(redis_connect_attempts=2))

    assert flaky.calls == ["ping", "ping"]
    assert flaky.closed


@pytest.mark.asyncio
async def test_client_manager_shares_and_closes_one_client(monkeypatch: pytest.MonkeyPatch) -> None:
    created = []

    def _create(settings=None) -> FakeRedis:
        created.append(FakeRedis())
        return created[-1]

    monkeypatch.setattr(redis_factory, "create_client", _create)
    await redis_factory.close_client()

    first = redis_factory.get_client()
    assert redis_factory.get_client() is first
    assert ClientManager() is ClientManager()

    await redis_factory.close_client()

    assert first.closed
    assert redis_factory.get_client() is not first
    assert len(created) == 2
    await redis_factory.close_client()
