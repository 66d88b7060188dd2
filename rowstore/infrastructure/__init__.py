"""
Infrastructure package for rowstore.

Centralizes database connectivity (pooling, retrying connects) and the
storage client records are written through. Keep this layer focused on I/O
and resource management, decoupled from record semantics.
"""

from rowstore.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    get_sync_connection,
    get_sync_pool,
)
from rowstore.infrastructure.storage import PsycopgStorageClient, StorageClient

__all__ = [
    "PoolManager",
    "PsycopgStorageClient",
    "StorageClient",
    "build_dsn",
    "get_sync_connection",
    "get_sync_pool",
]
