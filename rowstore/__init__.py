"""
rowstore - active-record persistence for single table rows.

Subclass Record, declare a Schema, and inject a StorageClient:

- Records buffer fields in memory and read unbuffered ones lazily
- save() inserts new rows or updates existing ones
- hydrate() loads every declared column in one round trip
- delete() removes the row and returns the record to a detached state

Expected failures are reported as OperationResult values rather than raised.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from rowstore.config import Settings, get_settings
from rowstore.domain import Failure, FieldValue, OperationResult, Record, Schema
from rowstore.exceptions import (
    FieldNotLoadedError,
    RecordError,
    RowstoreError,
    SchemaNotDeclaredError,
)
from rowstore.infrastructure import PsycopgStorageClient, StorageClient
from rowstore.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Records
    "Record",
    "Schema",
    "FieldValue",
    "OperationResult",
    "Failure",
    # Storage
    "StorageClient",
    "PsycopgStorageClient",
    # Errors
    "RowstoreError",
    "RecordError",
    "SchemaNotDeclaredError",
    "FieldNotLoadedError",
    # Logging
    "configure_logging",
    "get_logger",
]
