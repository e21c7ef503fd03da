"""
redmodel - Redis-backed records, secondary indexes and materialized views.

This package layers a small object mapper over an asyncio Redis client:

- Records stored as typed, self-describing hashes
- Record sets with index sets kept current through lifecycle hooks
- Single-index queries with sort/limit/skip via Redis SORT
- Materialized views: sorted, filtered projections across record sets with
  an optional in-memory head cache
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from redmodel.config import Settings, get_settings
from redmodel.domain import ConfigurationError, FieldSpec, Schema, ValidationFailed
from redmodel.infrastructure import close_client, connect_client, create_client, get_client, redis_key
from redmodel.odm import (
    Destroyable,
    LifecycleHooks,
    MaterializedView,
    Record,
    RecordSet,
    destroy_all,
)
from redmodel.utils.codec import dehydrate, hydrate
from redmodel.utils.keys import build_key
from redmodel.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Schema and errors
    "ConfigurationError",
    "FieldSpec",
    "Schema",
    "ValidationFailed",
    # Client
    "close_client",
    "connect_client",
    "create_client",
    "get_client",
    "redis_key",
    # Records and views
    "Destroyable",
    "LifecycleHooks",
    "MaterializedView",
    "Record",
    "RecordSet",
    "destroy_all",
    # Codec and keys
    "build_key",
    "dehydrate",
    "hydrate",
    # Logging
    "configure_logging",
    "get_logger",
]
