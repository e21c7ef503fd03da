"""
A single persisted entity stored as a Redis hash.

A Record holds an id, a mutable property bag and a reference to a shared,
externally owned store client. ``save()`` and ``destroy()`` are the only
operations that write; index sets and views are maintained by listeners of
the record's lifecycle hooks, never inline.

Known limitation: hook reactions run after the record's own transaction has
committed and are not part of it. A failure between the two leaves an index
or view out of step with the record until ``MaterializedView.repopulate()``
(or an equivalent pass) runs. A store error raised by EXEC can also arrive
after the write step was applied, so a failed save may still be durable.
"""

from __future__ import annotations

import copy
import uuid
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from redmodel.config import get_settings
from redmodel.domain.errors import ConfigurationError, ValidationFailed
from redmodel.domain.schema import Schema, ValidationResult
from redmodel.odm.events import (
    DESTROY_AFTER,
    DESTROY_BEFORE,
    SAVE_AFTER,
    SAVE_BEFORE,
    LifecycleHooks,
)
from redmodel.odm.indexer import IndexMaintainer
from redmodel.utils.codec import decode_hash, from_hash, to_hash
from redmodel.utils.keys import build_key
from redmodel.utils.logging import get_logger

if TYPE_CHECKING:
    from redmodel.odm.abstract import StoreClient
    from redmodel.odm.record_set import RecordSet

log = get_logger(__name__)

DEFAULT_NAMESPACE = "generic"


def new_id() -> str:
    return uuid.uuid4().hex[:16]


class Record:
    """
    One addressable entity: ``root:namespace:id`` in Redis.

    Bindings (client, namespace, schema, indexes, key root, hooks) come from
    ``record_set`` when given, otherwise from the keyword arguments. A
    standalone record gets private hooks with its own index maintenance.

    Example
    -------
        apple = Record({"name": "apple"}, fruit)
        await apple.save()
        await apple.destroy()
    """

    def __init__(
        self,
        attrs: Optional[Dict[str, Any]] = None,
        record_set: Optional["RecordSet"] = None,
        *,
        id: Optional[Any] = None,
        client: Optional["StoreClient"] = None,
        namespace: Optional[str] = None,
        schema: Optional[Schema] = None,
        indexes: Optional[Iterable[str]] = None,
        root: Optional[str] = None,
        hooks: Optional[LifecycleHooks] = None,
    ) -> None:
        if record_set is not None:
            client = client if client is not None else record_set.client
            namespace = namespace or record_set.namespace
            schema = schema or record_set.schema
            indexes = indexes if indexes is not None else record_set.indexes
            root = root or record_set.root
            hooks = hooks or record_set.hooks
        if client is None:
            raise ConfigurationError("Records require a store client (client=... or a record_set)")

        self.client = client
        self.record_set = record_set
        self.namespace = namespace or DEFAULT_NAMESPACE
        self.schema = schema or Schema(name=self.namespace)
        self.indexes = list(indexes) if indexes is not None else self.schema.indexes
        self.root = root or get_settings().redis_key_root
        self.id = str(id) if id is not None else new_id()
        self.properties: Dict[str, Any] = dict(attrs or {})
        self.schema.apply_defaults(self.properties)
        # Hydrated state that was stored before the last save/destroy.
        self.previous: Optional[Dict[str, Any]] = None

        if hooks is None:
            hooks = LifecycleHooks()
            IndexMaintainer(self.client, self.namespace, self.indexes, self.root).attach(hooks)
        self.hooks = hooks

    def __repr__(self) -> str:
        return f"<Record {self.name}:{self.id} {self.properties!r}>"

    @property
    def name(self) -> str:
        """Schema name, used to identify the record's kind inside views."""
        return self.schema.name

    @property
    def key(self) -> str:
        return build_key(self.namespace, id=self.id, root=self.root)

    def validate(self) -> ValidationResult:
        return self.schema.validate_properties(self.properties)

    def _check_valid(self) -> None:
        result = self.validate()
        if not result.valid:
            raise ValidationFailed(result.errors)

    async def save(self) -> "Record":
        """
        Validate, write the full hash and read it back in one transaction.

        In-memory properties afterwards are the read-back, not what was
        written.

        Raises
        ------
        ValidationFailed
            Before any store command when properties violate the schema.
        redis.exceptions.RedisError
            On store failure.
        """
        self._check_valid()
        await self.hooks.emit(SAVE_BEFORE, self)
        # before-save listeners may have changed properties
        self._check_valid()
        mapping = to_hash(self.properties)

        key = self.key
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.hgetall(key)
            pipe.delete(key)
            pipe.hset(key, mapping=mapping)
            pipe.hgetall(key)
            previous, _, _, stored = await pipe.execute()

        self.previous = from_hash(decode_hash(previous)) if previous else None
        self.properties = from_hash(decode_hash(stored))
        log.debug("Record saved", extra={"key": key, "new": self.previous is None})

        await self.hooks.emit_after(SAVE_AFTER, self)
        return self

    async def destroy(self) -> None:
        """Delete the record's hash, then let listeners retract it from indexes/views."""
        await self.hooks.emit(DESTROY_BEFORE, self)

        key = self.key
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.hgetall(key)
            pipe.delete(key)
            previous, _ = await pipe.execute()

        self.previous = from_hash(decode_hash(previous)) if previous else None
        log.debug("Record destroyed", extra={"key": key, "existed": self.previous is not None})

        await self.hooks.emit_after(DESTROY_AFTER, self)

    async def load(self) -> Optional["Record"]:
        """
        Replace properties with the stored hash.

        Returns ``None`` (not an error) when nothing is stored under the key.
        """
        raw = await self.client.hgetall(self.key)
        if not raw:
            return None
        self.properties = from_hash(decode_hash(raw))
        return self

    def copy(self) -> "Record":
        """Detached snapshot sharing bindings but not properties."""
        clone = Record(
            copy.deepcopy(self.properties),
            self.record_set,
            id=self.id,
            client=self.client,
            namespace=self.namespace,
            schema=self.schema,
            indexes=self.indexes,
            root=self.root,
            hooks=self.hooks,
        )
        clone.previous = copy.deepcopy(self.previous)
        return clone


__all__ = ["Record", "DEFAULT_NAMESPACE", "new_id"]
