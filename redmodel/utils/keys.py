"""
Key naming for everything redmodel stores in Redis.

Layout under the root token:
- ``root:namespace:id``          record hash
- ``root:namespace``             set of all ids in the namespace
- ``root:namespace:field:value`` index set
- ``root:views:name``            view sorted set
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from redmodel.utils.codec import encode_scalar

DEFAULT_ROOT = "redmodel"
VIEWS_NAMESPACE = "views"


def build_key(
    namespace: Optional[str] = None,
    index: Optional[Tuple[str, Any]] = None,
    id: Optional[Any] = None,
    root: str = DEFAULT_ROOT,
) -> str:
    """
    Build a colon-joined Redis key.

    Parameters
    ----------
    namespace : str | None
        Record namespace (or ``views``).
    index : (field, value) | None
        Index name and value; takes precedence over ``id``. The pair is
        left out when either part is empty (``None`` and ``""`` both
        encode to empty text).
    id : Any | None
        Record id (or view name).
    root : str
        Root token every key starts with.

    Raises
    ------
    ValueError
        If nothing but the root would be left.
    """
    parts = [root]
    if namespace:
        parts.append(namespace)
    if index is not None:
        field, value = index
        text = encode_scalar(value)
        if field and text:
            parts.append(field)
            parts.append(text)
    elif id is not None and id != "":
        parts.append(str(id))
    if len(parts) == 1:
        raise ValueError("build_key() needs a namespace, an index or an id")
    return ":".join(parts)


def view_key(name: str, root: str = DEFAULT_ROOT) -> str:
    return build_key(VIEWS_NAMESPACE, id=name, root=root)


__all__ = ["DEFAULT_ROOT", "VIEWS_NAMESPACE", "build_key", "view_key"]
