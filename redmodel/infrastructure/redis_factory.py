"""
Redis client factory utilities for redmodel.

Provides centralized creation and lifecycle management of the shared
``redis.asyncio`` client. The ClientManager singleton owns the process-wide
client; records, record sets and views only ever borrow it.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import threading
from typing import Any, List, Optional, Sequence, Union

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from redmodel.config import Settings, get_settings
from redmodel.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_NODE = "127.0.0.1:6379"


def normalize_nodes(conf: Union[str, Sequence[str], None]) -> List[str]:
    """
    Accept a single ``host:port`` string, a list of them, or nothing.

    Returns
    -------
    List[str]
        Never empty; defaults to ``127.0.0.1:6379``.
    """
    if isinstance(conf, str):
        nodes = [conf]
    else:
        nodes = [node for node in (conf or []) if node]
    return nodes or [DEFAULT_NODE]


def _url(settings: Settings) -> str:
    if settings.redis_url:
        return settings.redis_url
    node = normalize_nodes(settings.redis_nodes)[0]
    if "://" in node:
        return node
    return f"redis://{node}/{settings.redis_db}"


def create_client(settings: Optional[Settings] = None) -> Redis:
    """
    Build a client without connecting (redis-py connects lazily).

    Responses are always decoded to ``str``.
    """
    settings = settings or get_settings()
    return Redis.from_url(
        _url(settings),
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
    )


async def connect_client(settings: Optional[Settings] = None) -> Redis:
    """
    Create a client and verify it with PING, retrying transient failures.

    Retries up to ``settings.redis_connect_attempts`` times with exponential
    backoff.

    Raises
    ------
    redis.exceptions.ConnectionError
        If the server is unreachable after all attempts.
    """
    settings = settings or get_settings()
    client = create_client(settings)
    retrying = AsyncRetrying(
        stop=stop_after_attempt(settings.redis_connect_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError)),
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                await client.ping()
    except Exception:
        log.error("Redis connection failed", extra={"url": _url(settings)})
        await client.aclose()
        raise
    log.info("Redis client connected", extra={"url": _url(settings)})
    return client


class ClientManager:
    """
    Thread-safe singleton holding the process-wide Redis client.
    """

    _instance: Optional["ClientManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ClientManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._client = None
            return cls._instance

    def get_client(self, settings: Optional[Settings] = None) -> Redis:
        """Get or create the shared client."""
        with self._lock:
            if self._client is None:
                self._client = create_client(settings)
            return self._client

    async def close_all(self) -> None:
        """Close the shared client and forget it."""
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            await client.aclose()
            log.info("Redis client closed")


def get_client(settings: Optional[Settings] = None) -> Redis:
    return ClientManager().get_client(settings)


async def close_client() -> None:
    await ClientManager().close_all()


def redis_key(*parts: Any, prefix: Optional[str] = None) -> str:
    """
    Namespaced key for application data: ``<prefix>:<part>:<part>...``.

    Example
    -------
        redis_key("sessions", user_id)  # "redmodel:sessions:42"
    """
    prefix = prefix or get_settings().redis_key_root
    return ":".join([prefix, *(str(part) for part in parts)])


__all__ = [
    "ClientManager",
    "close_client",
    "connect_client",
    "create_client",
    "get_client",
    "normalize_nodes",
    "redis_key",
]
