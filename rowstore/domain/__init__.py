"""
Domain package for rowstore.

Exports the Record base class, its Schema descriptor and the result contract
returned by persistence operations.
"""

from rowstore.domain.record import FieldValue, Record
from rowstore.domain.results import Failure, OperationResult
from rowstore.domain.schema import Format, Schema

__all__ = [
    "Failure",
    "FieldValue",
    "Format",
    "OperationResult",
    "Record",
    "Schema",
]
