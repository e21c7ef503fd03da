"""
Utilities package for redmodel.

Exports shared helpers for logging, key naming and the hash type codec.
Keep this package lightweight and free of record/view logic.
"""

from redmodel.utils.codec import dehydrate, from_hash, hydrate, to_hash
from redmodel.utils.keys import build_key, view_key
from redmodel.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "build_key",
    "view_key",
    "dehydrate",
    "hydrate",
    "from_hash",
    "to_hash",
]
