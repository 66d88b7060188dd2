"""
Exception hierarchy for rowstore.

Expected persistence failures (row not saved yet, storage reporting zero
affected rows, nothing to insert) are returned as OperationResult values and
never raised. The exceptions below signal contract violations by the caller.
"""

__all__ = [
    "RowstoreError",
    "RecordError",
    "SchemaNotDeclaredError",
    "FieldNotLoadedError",
]


class RowstoreError(Exception):
    """Root exception for all rowstore errors."""


class RecordError(RowstoreError):
    """Raised when a Record is used in a way its contract forbids."""


class SchemaNotDeclaredError(RecordError):
    """Raised when a Record subclass is instantiated without a schema."""


class FieldNotLoadedError(RecordError, KeyError):
    """Raised when reading a field that was never set on a detached record."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"field {self.key!r} is not loaded and the record has not been saved"
