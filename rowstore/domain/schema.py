"""
Schema descriptors for rowstore records.

Each Record subclass declares one immutable Schema describing the table it
maps: logical table name, optional class-level table prefix, the primary key
column and its storage format, the declared columns and their formats, and
the timestamp columns stamped automatically.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

Format = Literal["%d", "%f", "%s"]
"""Storage format of a column: integer, float or string."""

DEFAULT_FORMAT: Format = "%s"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_identifier(name: str) -> bool:
    """Whether `name` is a plain SQL identifier safe to use as a column or table."""
    return bool(_IDENTIFIER.match(name))


def _check_identifier(name: str, what: str) -> str:
    if not is_identifier(name):
        raise ValueError(f"{what} {name!r} is not a plain SQL identifier")
    return name


class Schema(BaseModel):
    """
    Description of the table a Record subclass maps.
    """

    table: str = Field(..., min_length=1, description="Logical (unprefixed) table name.")
    table_prefix: Optional[str] = Field(
        None, description="Class-level table prefix; None falls back to settings."
    )
    primary_key: Dict[str, Format] = Field(
        default_factory=lambda: {"id": "%d"},
        description="Primary key column name to storage format.",
    )
    columns: Dict[str, Format] = Field(
        default_factory=dict, description="Declared column name to storage format."
    )
    created_column: Optional[str] = Field("created", description="Creation timestamp column.")
    updated_column: Optional[str] = Field("updated", description="Update timestamp column.")

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("table")
    @classmethod
    def _validate_table(cls, value: str) -> str:
        return _check_identifier(value, "table")

    @field_validator("table_prefix")
    @classmethod
    def _validate_prefix(cls, value: Optional[str]) -> Optional[str]:
        if value:
            _check_identifier(value, "table prefix")
        return value

    @field_validator("primary_key")
    @classmethod
    def _validate_primary_key(cls, value: Dict[str, Format]) -> Dict[str, Format]:
        if len(value) != 1:
            raise ValueError("primary_key must declare exactly one column")
        for name in value:
            _check_identifier(name, "primary key column")
        return value

    @field_validator("columns")
    @classmethod
    def _validate_columns(cls, value: Dict[str, Format]) -> Dict[str, Format]:
        for name in value:
            _check_identifier(name, "column")
        return value

    @field_validator("created_column", "updated_column")
    @classmethod
    def _validate_timestamp_column(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            _check_identifier(value, "timestamp column")
        return value

    @model_validator(mode="after")
    def _timestamps_are_not_primary_key(self) -> "Schema":
        for column in (self.created_column, self.updated_column):
            if column is not None and column in self.primary_key:
                raise ValueError(f"timestamp column {column!r} cannot be the primary key")
        return self

    @property
    def primary_key_column(self) -> str:
        return next(iter(self.primary_key))

    @property
    def primary_key_format(self) -> Format:
        return self.primary_key[self.primary_key_column]

    @property
    def data_columns(self) -> List[str]:
        """Declared columns excluding the primary key, in declaration order."""
        return [name for name in self.columns if name not in self.primary_key]

    def column_format(self, key: str) -> Format:
        """Storage format for `key`; undeclared columns are strings."""
        return self.columns.get(key, DEFAULT_FORMAT)

    def formats_for(self, keys: Iterable[str]) -> List[Format]:
        return [self.column_format(key) for key in keys]

    def physical_table(self, global_prefix: str, default_prefix: str) -> str:
        """
        Physical table name: process-wide prefix, then the class prefix (or the
        configured default when the schema declares none), then the table.
        """
        class_prefix = self.table_prefix if self.table_prefix is not None else default_prefix
        return f"{global_prefix}{class_prefix}{self.table}"


__all__ = ["DEFAULT_FORMAT", "Format", "Schema", "is_identifier"]
