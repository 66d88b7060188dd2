"""
Result contract for record persistence operations.

Persistence never raises for expected failures; callers receive an
OperationResult instead. It is truthy exactly when the operation succeeded,
so `if record.save():` keeps reading naturally.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class Failure(str, enum.Enum):
    """Why a persistence operation did not succeed."""

    NOT_PERSISTED = "not_persisted"
    STORAGE_FAILURE = "storage_failure"
    EMPTY_INSERT = "empty_insert"


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    failure: Optional[Failure] = None
    rows_affected: int = 0
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, rows_affected: int = 1) -> "OperationResult":
        return cls(ok=True, rows_affected=rows_affected)

    @classmethod
    def fail(cls, failure: Failure, message: Optional[str] = None) -> "OperationResult":
        return cls(ok=False, failure=failure, message=message)


__all__ = ["Failure", "OperationResult"]
