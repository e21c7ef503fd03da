"""
Capability interfaces for the record/view layer.

``StoreClient`` documents the slice of the ``redis.asyncio.Redis`` surface the
layer depends on; any client created with ``decode_responses=True`` satisfies
it. ``Destroyable`` is the capability bulk teardown looks for.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class Destroyable(Protocol):
    """
    Anything that can remove its own persisted state.

    Records, views and user types with an ``async def destroy()`` all qualify.
    """

    async def destroy(self) -> Any:
        ...


class StoreClient(Protocol):
    """
    Key-value store operations consumed by records, record sets and views.
    """

    async def hgetall(self, name: str) -> Dict[str, str]:
        ...

    async def hset(self, name: str, key: Optional[str] = None, value: Any = None, mapping: Optional[Mapping[str, Any]] = None) -> int:
        ...

    async def delete(self, *names: str) -> int:
        ...

    async def sadd(self, name: str, *values: Any) -> int:
        ...

    async def srem(self, name: str, *values: Any) -> int:
        ...

    async def scard(self, name: str) -> int:
        ...

    async def zadd(self, name: str, mapping: Mapping[str, float]) -> int:
        ...

    async def zrem(self, name: str, *values: Any) -> int:
        ...

    async def zrange(self, name: str, start: int, end: int, withscores: bool = False) -> List[Any]:
        ...

    async def zrevrange(self, name: str, start: int, end: int, withscores: bool = False) -> List[Any]:
        ...

    async def zcard(self, name: str) -> int:
        ...

    async def sort(
        self,
        name: str,
        start: Optional[int] = None,
        num: Optional[int] = None,
        by: Optional[str] = None,
        get: Any = None,
        desc: bool = False,
        alpha: bool = False,
    ) -> List[str]:
        ...

    def pipeline(self, transaction: bool = True, shard_hint: Any = None) -> Any:
        ...


__all__ = ["Destroyable", "StoreClient"]
