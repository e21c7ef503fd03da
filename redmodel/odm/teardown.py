"""
Bulk teardown of records, views and anything else with a ``destroy()``.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, List, Mapping

from redmodel.odm.abstract import Destroyable
from redmodel.utils.logging import get_logger

log = get_logger(__name__)


def _collect(items: tuple) -> List[Destroyable]:
    targets: List[Destroyable] = []
    for item in items:
        if isinstance(item, Destroyable):
            targets.append(item)
        elif isinstance(item, (str, bytes, Mapping)):
            continue
        elif hasattr(item, "__iter__"):
            targets.extend(thing for thing in item if isinstance(thing, Destroyable))
    return targets


async def _destroy(target: Destroyable) -> None:
    result = target.destroy()
    if inspect.isawaitable(result):
        await result


async def destroy_all(*items: Any) -> None:
    """
    Destroy every destroyable item concurrently.

    ``items`` may mix single objects and iterables of objects. Objects
    without a ``destroy()`` are skipped; ``destroy()`` may be sync or async.
    Once every destroy has settled, the first failure (in argument order)
    is raised.

    Example:
        await destroy_all(view, records, extra_record)
    """
    targets = _collect(items)
    results = await asyncio.gather(*(_destroy(target) for target in targets), return_exceptions=True)
    errors = [result for result in results if isinstance(result, BaseException)]
    if errors:
        log.error(
            f"[TEARDOWN FAILED] {len(errors)}/{len(targets)} destroy calls failed",
            extra={"failed": len(errors), "total": len(targets)},
        )
        raise errors[0]
    log.debug("Teardown complete", extra={"total": len(targets)})


__all__ = ["destroy_all"]
