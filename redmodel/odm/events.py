"""
Lifecycle notifications for records and views.

``Emitter`` keeps an ordered list of listeners per event name and awaits them
in registration order; listeners may be plain callables or coroutine
functions. ``LifecycleHooks`` adds the record lifecycle contract:

- ``save:before`` / ``destroy:before`` run before any write. Listeners may
  mutate the record; an exception aborts the operation.
- ``save:after`` / ``destroy:after`` run once the record's own write is
  durable. Each listener is isolated: a failure is logged and re-emitted as
  ``error(exc, record)`` and never reaches the caller of save/destroy.
"""

from __future__ import annotations

import functools
import inspect
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

from redmodel.utils.logging import get_logger

log = get_logger(__name__)

Listener = Callable[..., Any]

SAVE_BEFORE = "save:before"
SAVE_AFTER = "save:after"
DESTROY_BEFORE = "destroy:before"
DESTROY_AFTER = "destroy:after"
ERROR = "error"


class Emitter:
    """Ordered, awaitable event listeners."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Listener:
        self._listeners[event].append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        @functools.wraps(listener)
        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return listener(*args)

        return self.on(event, _wrapper)

    def off(self, event: str, listener: Listener) -> None:
        """Remove the first registration of ``listener``, including one made by ``once()``."""
        registered = self._listeners[event]
        for candidate in registered:
            if candidate == listener or getattr(candidate, "__wrapped__", None) == listener:
                registered.remove(candidate)
                return

    def listeners(self, event: str) -> List[Listener]:
        return list(self._listeners.get(event, ()))

    async def emit(self, event: str, *args: Any) -> None:
        """Call every listener of ``event``; the first exception propagates."""
        for listener in self.listeners(event):
            result = listener(*args)
            if inspect.isawaitable(result):
                await result


class LifecycleHooks(Emitter):
    """Emitter with isolated after-events for record lifecycles."""

    async def emit_after(self, event: str, record: Any) -> None:
        for listener in self.listeners(event):
            try:
                result = listener(record)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # noqa: BLE001 - after-reactions must not fail the write
                log.exception(
                    f"[HOOK FAILED] {event}",
                    extra={"event": event, "record_id": getattr(record, "id", None)},
                )
                await self._report(exc, record)

    async def _report(self, exc: Exception, record: Any) -> None:
        for listener in self.listeners(ERROR):
            try:
                result = listener(exc, record)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # noqa: BLE001
                log.exception("[HOOK FAILED] error listener raised")


__all__ = [
    "Emitter",
    "LifecycleHooks",
    "SAVE_BEFORE",
    "SAVE_AFTER",
    "DESTROY_BEFORE",
    "DESTROY_AFTER",
    "ERROR",
]
