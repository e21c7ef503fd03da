"""
Materialized views: incrementally maintained, sorted and filtered projections
over one or more record sets.

A view is a Redis sorted set at ``root:views:<name>`` whose members are
compact JSON ``{"id": ..., "name": <schema name>}`` scored by the record's
sort property. It subscribes to ``save:after`` / ``destroy:after`` of its
record sets and keeps membership in step. An optional in-memory cache mirrors
the head of the set in the view's default direction so hot ``list()`` calls
skip the store.

Example:
    fruit_by_calories = MaterializedView(
        client,
        "fruitByCalories",
        [pantry],
        sort="calories",
        dir="DESC",
        filter=lambda record: record.properties.get("group") == "fruit",
        cache_size=20,
    )
    top = await fruit_by_calories.list(limit=5)
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Tuple

from redmodel.config import get_settings
from redmodel.domain.errors import ConfigurationError
from redmodel.odm.events import DESTROY_AFTER, DESTROY_BEFORE, ERROR, SAVE_AFTER, Emitter
from redmodel.utils.codec import decode_list
from redmodel.utils.keys import view_key
from redmodel.utils.logging import get_logger

if TYPE_CHECKING:
    from redmodel.odm.abstract import StoreClient
    from redmodel.odm.record import Record
    from redmodel.odm.record_set import RecordSet

log = get_logger(__name__)

ASC = "ASC"
DESC = "DESC"

RECORD_ADDED = "record:added"
RECORD_UPDATED = "record:updated"
RECORD_REMOVED = "record:removed"

Filter = Callable[["Record"], bool]


@dataclass
class CacheEntry:
    member: str
    score: float
    record: "Record"

    @property
    def order(self) -> Tuple[float, str]:
        # Redis orders equal scores by member, bytewise.
        return (self.score, self.member)


class ViewCache:
    """
    In-memory mirror of the first ``size`` members of a view.

    Invariant while primed: ``entries`` equals the first ``len(entries)``
    members of the sorted set in the cache's direction. When ``exhaustive``
    the entries are the whole set. Members that would land past the last
    cached entry of a non-exhaustive cache are not admitted, since unseen
    members may sit in between.
    """

    def __init__(self, size: int, descending: bool = False) -> None:
        self.size = size
        self.descending = descending
        self.entries: List[CacheEntry] = []
        self.primed = False
        self.exhaustive = False
        # bumped on every membership change; stale priming results are discarded
        self.generation = 0

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def depleted(self) -> bool:
        return self.primed and not self.exhaustive and len(self.entries) < self.size

    def _sort(self) -> None:
        self.entries.sort(key=lambda entry: entry.order, reverse=self.descending)

    def _precedes(self, entry: CacheEntry, other: CacheEntry) -> bool:
        if self.descending:
            return entry.order > other.order
        return entry.order < other.order

    def _index(self, member: str) -> Optional[int]:
        for i, entry in enumerate(self.entries):
            if entry.member == member:
                return i
        return None

    def _admit(self, entry: CacheEntry) -> None:
        if not self.exhaustive and not (self.entries and self._precedes(entry, self.entries[-1])):
            return
        self.entries.append(entry)
        self._sort()
        if len(self.entries) > self.size:
            del self.entries[self.size :]
            self.exhaustive = False

    def invalidate(self) -> None:
        self.generation += 1
        self.primed = False
        self.exhaustive = False
        self.entries = []

    def reset_empty(self) -> None:
        """The backing set was just deleted."""
        self.generation += 1
        self.primed = True
        self.exhaustive = True
        self.entries = []

    def install(self, entries: List[CacheEntry], exhaustive: bool, generation: int) -> bool:
        if generation != self.generation:
            return False
        self.entries = list(entries[: self.size])
        self._sort()
        self.exhaustive = exhaustive
        self.primed = True
        return True

    def insert(self, member: str, score: float, record: "Record") -> None:
        self.generation += 1
        if self.primed:
            self._admit(CacheEntry(member, score, record.copy()))

    def update(self, member: str, score: float, record: "Record") -> None:
        self.generation += 1
        if not self.primed:
            return
        entry = CacheEntry(member, score, record.copy())
        index = self._index(member)
        if index is None:
            self._admit(entry)
            return
        del self.entries[index]
        self._admit(entry)

    def remove(self, member: str) -> None:
        self.generation += 1
        if not self.primed:
            return
        index = self._index(member)
        if index is not None:
            del self.entries[index]

    def window(self, skip: int, limit: int) -> Optional[List[CacheEntry]]:
        """Entries for ``[skip, skip + limit)``, or ``None`` if not fully cached."""
        if not self.primed:
            return None
        end = skip + limit
        if end <= len(self.entries) or self.exhaustive:
            return self.entries[skip:end]
        return None


class MaterializedView(Emitter):
    """
    Named, sorted, optionally filtered projection over record sets.

    Events: ``record:added``, ``record:updated``, ``record:removed`` (with the
    record), ``error`` (with the exception and record), ``destroy:before`` and
    ``destroy:after`` (with the view).

    Parameters
    ----------
    client : StoreClient
        Connected ``redis.asyncio`` client.
    name : str
        Unique view name; the key is ``root:views:<name>``.
    record_sets : iterable[RecordSet]
        Sources whose records are eligible for the view.
    sort : str | None
        Property used as score. Records without it score ``0``.
    dir : str
        ``ASC`` or ``DESC``; the default direction of ``list()`` and of the
        cache.
    filter : callable | None
        Predicate deciding membership.
    cache_size : int | None
        Number of head members mirrored in memory; ``0`` disables the cache.
        Defaults to ``settings.view_cache_size``.
    repopulate_concurrency : int | None
        Concurrent replays during ``repopulate()``. Defaults to
        ``settings.view_repopulate_concurrency``.
    """

    def __init__(
        self,
        client: Optional["StoreClient"],
        name: str,
        record_sets: Iterable["RecordSet"],
        *,
        sort: Optional[str] = None,
        dir: str = ASC,
        filter: Optional[Filter] = None,
        cache_size: Optional[int] = None,
        root: Optional[str] = None,
        repopulate_concurrency: Optional[int] = None,
    ) -> None:
        if not name:
            raise ConfigurationError("Views must have a unique name")
        if client is None:
            raise ConfigurationError("Views require a store client")
        record_sets = list(record_sets or ())
        if not record_sets:
            raise ConfigurationError("Views require one or more record sets")
        dir = (dir or ASC).upper()
        if dir not in (ASC, DESC):
            raise ConfigurationError(f"Unknown view direction {dir!r}; use ASC or DESC")

        super().__init__()
        settings = get_settings()
        self.client = client
        self.name = name
        self.root = root or settings.redis_key_root
        self.key = view_key(name, root=self.root)
        self.record_sets = record_sets
        self.sort = sort
        self.dir = dir
        self.filter = filter
        self.cache_size = settings.view_cache_size if cache_size is None else cache_size
        self.repopulate_concurrency = repopulate_concurrency or settings.view_repopulate_concurrency
        self.cache: Optional[ViewCache] = (
            ViewCache(self.cache_size, descending=dir == DESC) if self.cache_size > 0 else None
        )

        self._by_name: Dict[str, "RecordSet"] = {}
        for record_set in record_sets:
            if record_set.name in self._by_name:
                raise ConfigurationError(f"Duplicate record set name {record_set.name!r} in view {name!r}")
            self._by_name[record_set.name] = record_set

        self.listen()

    def __repr__(self) -> str:
        return f"<MaterializedView {self.name} sort={self.sort!r} dir={self.dir}>"

    def listen(self) -> None:
        for record_set in self.record_sets:
            record_set.hooks.on(SAVE_AFTER, self._after_save)
            record_set.hooks.on(DESTROY_AFTER, self._after_destroy)

    def close(self) -> None:
        """Stop following the record sets; the stored view is left as is."""
        for record_set in self.record_sets:
            record_set.hooks.off(SAVE_AFTER, self._after_save)
            record_set.hooks.off(DESTROY_AFTER, self._after_destroy)

    @staticmethod
    def member(record: "Record") -> str:
        return json.dumps({"id": str(record.id), "name": record.name}, separators=(",", ":"))

    def score(self, record: "Record") -> float:
        """
        Numeric score for ``record``.

        Raises
        ------
        TypeError, ValueError
            When the sort value cannot be read as a number.
        """
        if not self.sort:
            return 0.0
        value = record.properties.get(self.sort)
        if value is None:
            return 0.0
        if isinstance(value, datetime):
            return value.timestamp()
        if isinstance(value, (bool, int, float, str)):
            return float(value)
        raise TypeError(f"Cannot score {self.sort!r} of type {type(value).__name__!r}")

    async def _apply(self, record: "Record") -> None:
        member = self.member(record)
        if self.filter is None or self.filter(record):
            score = self.score(record)
            added = await self.client.zadd(self.key, {member: score})
            if added:
                if self.cache is not None:
                    self.cache.insert(member, score, record)
                await self.emit(RECORD_ADDED, record)
            else:
                if self.cache is not None:
                    self.cache.update(member, score, record)
                await self.emit(RECORD_UPDATED, record)
        else:
            removed = await self.client.zrem(self.key, member)
            if removed:
                if self.cache is not None:
                    self.cache.remove(member)
                await self.emit(RECORD_REMOVED, record)

    async def _after_save(self, record: "Record") -> None:
        try:
            await self._apply(record)
        except Exception as exc:  # noqa: BLE001 - surfaced on the view's error event
            await self._fail(exc, record)

    async def _after_destroy(self, record: "Record") -> None:
        member = self.member(record)
        try:
            await self.client.zrem(self.key, member)
            if self.cache is not None:
                self.cache.remove(member)
            await self.emit(RECORD_REMOVED, record)
        except Exception as exc:  # noqa: BLE001
            await self._fail(exc, record)

    async def _fail(self, exc: Exception, record: "Record") -> None:
        log.error(
            f"[VIEW FAILED] {self.name}: {exc}",
            extra={"view": self.name, "record_id": getattr(record, "id", None)},
        )
        if self.cache is not None:
            # membership may have changed without us seeing the outcome
            self.cache.invalidate()
        await self.emit(ERROR, exc, record)

    async def count(self) -> int:
        return await self.client.zcard(self.key)

    async def _range(self, start: int, stop: int, dir: str, withscores: bool = False) -> List[Any]:
        if dir == ASC:
            return await self.client.zrange(self.key, start, stop, withscores=withscores)
        return await self.client.zrevrange(self.key, start, stop, withscores=withscores)

    async def list(self, limit: int = 10, skip: int = 0, dir: Optional[str] = None) -> List["Record"]:
        """
        Records in the window ``[skip, skip + limit)`` of the view.

        Served from the cache when one is configured, ``dir`` is the view's
        default direction and the window is cached; otherwise read from Redis.
        """
        dir = (dir or self.dir).upper()
        if dir not in (ASC, DESC):
            raise ConfigurationError(f"Unknown view direction {dir!r}; use ASC or DESC")
        if limit <= 0:
            return []

        if self.cache is not None and dir == self.dir:
            if not self.cache.primed or self.cache.depleted:
                await self._prime_cache()
            entries = self.cache.window(skip, limit)
            if entries is not None:
                return [entry.record.copy() for entry in entries]

        members = decode_list(await self._range(skip, skip + limit - 1, dir))
        records = await self._hydrate(members)
        return [record for record in records if record is not None]

    async def _prime_cache(self) -> None:
        cache = self.cache
        generation = cache.generation
        # one past the cache size tells us whether the set is larger
        rows = await self._range(0, cache.size, self.dir, withscores=True)
        members = [member.decode("utf-8") if isinstance(member, bytes) else member for member, _ in rows]
        records = await self._hydrate(members)
        if any(record is None for record in records):
            log.warning("View cache not primed: members reference missing records", extra={"view": self.name})
            return
        entries = [
            CacheEntry(member, float(score), record)
            for member, (_, score), record in zip(members, rows, records)
        ]
        if cache.install(entries, exhaustive=len(rows) <= cache.size, generation=generation):
            log.debug("View cache primed", extra={"view": self.name, "entries": len(cache)})

    def _record_set(self, name: str) -> "RecordSet":
        try:
            return self._by_name[name]
        except KeyError:
            raise ConfigurationError(f"View {self.name!r} has no record set named {name!r}") from None

    async def _hydrate(self, members: List[str]) -> List[Optional["Record"]]:
        """Turn encoded members back into records, keeping their order."""

        async def _load(raw: str) -> Optional["Record"]:
            ref = json.loads(raw)
            record = await self._record_set(ref["name"]).get(ref["id"])
            if record is None:
                log.warning(
                    "View member references a missing record",
                    extra={"view": self.name, "member": raw},
                )
            return record

        return list(await asyncio.gather(*(_load(raw) for raw in members)))

    async def destroy(self) -> None:
        """Delete the view's sorted set. Listeners stay attached."""
        await self.emit(DESTROY_BEFORE, self)
        await self.client.delete(self.key)
        if self.cache is not None:
            self.cache.reset_empty()
        await self.emit(DESTROY_AFTER, self)
        log.info("View destroyed", extra={"view": self.name})

    async def repopulate(self) -> None:
        """
        Rebuild the view from the current contents of its record sets.

        Tears the set down, then replays the save reaction for every record
        with at most ``repopulate_concurrency`` replays in flight. The first
        error is raised once it occurs.
        """
        await self.destroy()
        semaphore = asyncio.Semaphore(self.repopulate_concurrency)

        async def _replay(record: "Record") -> None:
            async with semaphore:
                await self._apply(record)

        total = 0
        for record_set in self.record_sets:
            records = await record_set.find()
            await asyncio.gather(*(_replay(record) for record in records))
            total += len(records)
        log.info("View repopulated", extra={"view": self.name, "records": total})


__all__ = [
    "ASC",
    "DESC",
    "RECORD_ADDED",
    "RECORD_UPDATED",
    "RECORD_REMOVED",
    "CacheEntry",
    "MaterializedView",
    "ViewCache",
]
