"""
RecordSet: a schema-bound factory and query surface over Records.

A RecordSet owns no records. It binds a namespace, a schema and a client,
creates/fetches Records through them, answers single-index queries with
Redis SORT and keeps its index sets current through an IndexMaintainer
subscribed to the set's lifecycle hooks.

Example:
    fruit = RecordSet(client, "fruit", {"group": {"type": "string", "index": True}})
    apple = await fruit.create({"name": "apple", "group": "fruit", "calories": 90})
    heavy_first = await fruit.find({"group": "fruit"}, sort="calories", desc=True, limit=5)
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Union

from redmodel.config import get_settings
from redmodel.domain.errors import ConfigurationError
from redmodel.domain.schema import Schema
from redmodel.odm.events import LifecycleHooks, Listener
from redmodel.odm.indexer import IndexMaintainer
from redmodel.odm.record import DEFAULT_NAMESPACE, Record
from redmodel.utils.codec import decode_list
from redmodel.utils.keys import build_key
from redmodel.utils.logging import get_logger

if TYPE_CHECKING:
    from redmodel.odm.abstract import StoreClient

log = get_logger(__name__)

# Schema types whose stored text sorts correctly as text.
_TEXT_SORTED_TYPES = ("date", "string")


class RecordSet:
    """
    Records sharing a namespace and schema.

    Parameters
    ----------
    client : StoreClient
        Connected ``redis.asyncio`` client (``decode_responses=True``).
    namespace : str | None
        Key namespace; defaults to ``generic``.
    schema : Schema | Mapping | None
        A Schema, or plain ``field -> {type, index, required, default}``.
    indexes : iterable[str] | None
        Explicit indexed fields; defaults to fields declared ``index: True``.
    root : str | None
        Key root; defaults to ``settings.redis_key_root``.
    name : str | None
        Schema name when ``schema`` is a mapping; defaults to the namespace.
    """

    def __init__(
        self,
        client: Optional["StoreClient"],
        namespace: Optional[str] = None,
        schema: Union[Schema, Mapping[str, Any], None] = None,
        *,
        indexes: Optional[Iterable[str]] = None,
        root: Optional[str] = None,
        name: Optional[str] = None,
    ) -> None:
        if client is None:
            raise ConfigurationError("Record sets require a store client")

        self.client = client
        self.namespace = namespace or DEFAULT_NAMESPACE
        if isinstance(schema, Schema):
            self.schema = schema
        else:
            self.schema = Schema.from_mapping(name or self.namespace, schema)
        self.indexes: List[str] = list(indexes) if indexes is not None else self.schema.indexes
        self.root = root or get_settings().redis_key_root

        self.hooks = LifecycleHooks()
        self.indexer = IndexMaintainer(self.client, self.namespace, self.indexes, self.root).attach(
            self.hooks
        )

    def __repr__(self) -> str:
        return f"<RecordSet {self.name} namespace={self.namespace!r} indexes={self.indexes!r}>"

    @property
    def name(self) -> str:
        return self.schema.name

    def on(self, event: str, listener: Listener) -> Listener:
        return self.hooks.on(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        self.hooks.off(event, listener)

    def new(self, attrs: Optional[Dict[str, Any]] = None, id: Optional[Any] = None) -> Record:
        """Build an unsaved record bound to this set."""
        return Record(attrs, self, id=id)

    async def create(self, attrs: Optional[Dict[str, Any]] = None, id: Optional[Any] = None) -> Record:
        return await self.new(attrs, id=id).save()

    async def get(self, id: Any) -> Optional[Record]:
        """Fetch one record; ``None`` when it does not exist."""
        return await Record(None, self, id=id).load()

    async def update(self, id: Any, attrs: Mapping[str, Any]) -> Optional[Record]:
        """
        Overwrite the named fields of an existing record and save it.

        Returns ``None`` when no record has this id.
        """
        record = await self.get(id)
        if record is None:
            return None
        record.properties.update(attrs)
        return await record.save()

    async def get_all(self, ids: Iterable[Any]) -> List[Optional[Record]]:
        """
        Fetch many records concurrently, in the order of ``ids``.

        Missing ids yield ``None`` in their slot; the first store error fails
        the whole call.
        """
        return list(await asyncio.gather(*(self.get(id) for id in ids)))

    def query_key(self, query: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        """
        Resolve a query to the set it reads from.

        An empty value (``None`` or ``""``) is never indexed, so it resolves
        to ``None`` and matches nothing.

        Raises
        ------
        ConfigurationError
            For more than one condition or a condition on a non-indexed field.
        """
        conditions = dict(query or {})
        if not conditions:
            return build_key(self.namespace, root=self.root)
        if len(conditions) > 1:
            raise ConfigurationError("Multiple conditions in query not supported")
        field, value = next(iter(conditions.items()))
        if field not in self.indexes:
            raise ConfigurationError(f"{field!r} is not an indexed field of {self.name!r}")
        return self.indexer.index_key(field, value)

    def _alpha(self, sort: str, alpha: Optional[bool]) -> bool:
        if alpha is not None:
            return alpha
        return self.schema.field_type(sort) in _TEXT_SORTED_TYPES

    async def find_ids(
        self,
        query: Optional[Mapping[str, Any]] = None,
        *,
        sort: Optional[str] = None,
        desc: bool = False,
        alpha: Optional[bool] = None,
        limit: Optional[int] = None,
        skip: int = 0,
    ) -> List[str]:
        key = self.query_key(query)
        if key is None:
            return []
        kwargs: Dict[str, Any] = {}
        if sort:
            kwargs["by"] = build_key(self.namespace, id=f"*->{sort}", root=self.root)
            kwargs["desc"] = desc
            kwargs["alpha"] = self._alpha(sort, alpha)
        else:
            kwargs["by"] = "nosort"
        if limit is not None or skip:
            kwargs["start"] = skip or 0
            # a negative count reads to the end of the set
            kwargs["num"] = limit if limit is not None else -1

        return decode_list(await self.client.sort(key, **kwargs))

    async def find(
        self,
        query: Optional[Mapping[str, Any]] = None,
        *,
        sort: Optional[str] = None,
        desc: bool = False,
        alpha: Optional[bool] = None,
        limit: Optional[int] = None,
        skip: int = 0,
    ) -> List[Record]:
        """
        Find records, optionally through one indexed value, sorted and paged.

        Parameters
        ----------
        query : Mapping | None
            ``{}``/``None`` for every record, or a single ``{field: value}``
            on an indexed field.
        sort : str | None
            Property to order by (no index needed). Unsorted when omitted.
        desc : bool
            Sort descending.
        alpha : bool | None
            Compare as text; automatic for ``date``/``string`` schema fields.
        limit, skip : int
            Pagination window.
        """
        ids = await self.find_ids(query, sort=sort, desc=desc, alpha=alpha, limit=limit, skip=skip)
        records = await self.get_all(ids)
        found = [record for record in records if record is not None]
        if len(found) != len(records):
            log.warning(
                "Index references missing records",
                extra={"namespace": self.namespace, "missing": len(records) - len(found)},
            )
        return found

    async def find_one(
        self,
        query: Optional[Mapping[str, Any]] = None,
        *,
        sort: Optional[str] = None,
        desc: bool = False,
        alpha: Optional[bool] = None,
        skip: int = 0,
    ) -> Optional[Record]:
        results = await self.find(query, sort=sort, desc=desc, alpha=alpha, limit=1, skip=skip)
        return results[0] if results else None

    async def count(self, query: Optional[Mapping[str, Any]] = None) -> int:
        key = self.query_key(query)
        if key is None:
            return 0
        return await self.client.scard(key)


__all__ = ["RecordSet"]
