"""
Infrastructure package for redmodel.

Centralizes Redis connectivity concerns (client creation, connection checks,
shared client lifecycle, key prefixing). Keep this layer focused on I/O and
resource management, decoupled from record/view logic.
"""

from redmodel.infrastructure.redis_factory import (
    ClientManager,
    close_client,
    connect_client,
    create_client,
    get_client,
    normalize_nodes,
    redis_key,
)

__all__ = [
    "ClientManager",
    "close_client",
    "connect_client",
    "create_client",
    "get_client",
    "normalize_nodes",
    "redis_key",
]
