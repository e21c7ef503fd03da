"""
Secondary index sets maintained as lifecycle reactions.

For a namespace ``ns`` and indexed field ``f`` the maintainer keeps
``root:ns`` (all ids) and ``root:ns:f:<value>`` (ids whose ``f`` equals the
value) in step with records, reacting only to ``save:after`` and
``destroy:after``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, List, Optional

from redmodel.odm.events import DESTROY_AFTER, SAVE_AFTER, LifecycleHooks
from redmodel.utils.codec import encode_scalar
from redmodel.utils.keys import build_key
from redmodel.utils.logging import get_logger

if TYPE_CHECKING:
    from redmodel.odm.abstract import StoreClient
    from redmodel.odm.record import Record

log = get_logger(__name__)


class IndexMaintainer:
    def __init__(self, client: "StoreClient", namespace: str, indexes: Iterable[str], root: str) -> None:
        self.client = client
        self.namespace = namespace
        self.indexes: List[str] = list(indexes)
        self.root = root

    def attach(self, hooks: LifecycleHooks) -> "IndexMaintainer":
        hooks.on(SAVE_AFTER, self.after_save)
        hooks.on(DESTROY_AFTER, self.after_destroy)
        return self

    def detach(self, hooks: LifecycleHooks) -> None:
        hooks.off(SAVE_AFTER, self.after_save)
        hooks.off(DESTROY_AFTER, self.after_destroy)

    @property
    def all_key(self) -> str:
        return build_key(self.namespace, root=self.root)

    def index_key(self, field: str, value: Any) -> Optional[str]:
        """Index set for a value, or ``None`` when the value is empty and not indexed."""
        if encode_scalar(value) == "":
            return None
        return build_key(self.namespace, index=(field, value), root=self.root)

    async def after_save(self, record: "Record") -> None:
        previous = record.previous or {}
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.sadd(self.all_key, record.id)
            for field in self.indexes:
                old_key = self.index_key(field, previous.get(field))
                new_key = self.index_key(field, record.properties.get(field))
                if old_key and old_key != new_key:
                    pipe.srem(old_key, record.id)
                if new_key:
                    pipe.sadd(new_key, record.id)
            await pipe.execute()
        log.debug("Indexes updated", extra={"namespace": self.namespace, "id": record.id})

    async def after_destroy(self, record: "Record") -> None:
        values = record.previous if record.previous is not None else record.properties
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.srem(self.all_key, record.id)
            for field in self.indexes:
                key = self.index_key(field, values.get(field))
                if key:
                    pipe.srem(key, record.id)
            await pipe.execute()
        log.debug("Indexes retracted", extra={"namespace": self.namespace, "id": record.id})


__all__ = ["IndexMaintainer"]
