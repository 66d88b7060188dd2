"""
Active-record base class for single table rows.

A Record starts detached (no id). Fields set on it are buffered in memory
until `save()` inserts them and captures the generated id; after that,
unbuffered fields are fetched one column at a time on demand, `hydrate()`
loads every declared column in one read, and `save()` / `set(..., save=True)`
update the row in place. `delete()` removes the row and returns the record to
a fresh detached state.

Subclasses declare their table through a Schema:

    class Note(Record):
        schema = Schema(table="notes", columns={"title": "%s", "views": "%d"})

    note = Note(storage).setup({"title": "Intro", "views": 0})
    if note.save():
        note.set("views", 1, save=True)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

from rowstore.config import get_settings
from rowstore.domain.results import Failure, OperationResult
from rowstore.domain.schema import Format, Schema, is_identifier
from rowstore.exceptions import FieldNotLoadedError, RecordError, SchemaNotDeclaredError
from rowstore.infrastructure.storage import StorageClient
from rowstore.utils.logging import get_logger

log = get_logger(__name__)

FieldValue = Union[str, int, float, None]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def current_time() -> str:
    """Current UTC time formatted for datetime columns."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _quote(identifier: str) -> str:
    return f'"{identifier}"'


class Record:
    """
    Base class for objects mapping one row of a table.

    Parameters
    ----------
    storage : StorageClient
        Database client used for every read and write of this record.
    id : int, optional
        Primary key of an existing row. Omit for a new, unsaved record.
    """

    schema: ClassVar[Schema]

    def __init__(self, storage: StorageClient, id: Optional[int] = None) -> None:
        schema = getattr(type(self), "schema", None)
        if not isinstance(schema, Schema):
            raise SchemaNotDeclaredError(f"{type(self).__name__} does not declare a schema")

        self._storage = storage
        self._id: Optional[int] = id
        self._fields: Dict[str, FieldValue] = {}
        self.last_result: Optional[OperationResult] = None

        self.table_name = schema.physical_table(
            storage.prefix, get_settings().record_table_prefix
        )
        if not is_identifier(self.table_name):
            raise RecordError(f"table name {self.table_name!r} is not a plain SQL identifier")

        if self._id is None:
            now = current_time()
            if schema.created_column:
                self._fields[schema.created_column] = now
            if schema.updated_column:
                self._fields[schema.updated_column] = now

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r}, fields={self._fields!r})"

    # ── State ─────────────────────────────────────────────────────────────

    @property
    def storage(self) -> StorageClient:
        return self._storage

    @property
    def fields(self) -> Dict[str, FieldValue]:
        """Snapshot of the buffered fields."""
        return dict(self._fields)

    @property
    def is_persisted(self) -> bool:
        return self._id is not None

    def get_id(self) -> Optional[int]:
        return self._id

    def has(self, key: str) -> bool:
        """Whether `key` is currently buffered on this record."""
        return key in self._fields

    def to_map(self) -> Dict[str, FieldValue]:
        """Primary key followed by the buffered fields, as a new dict."""
        data: Dict[str, FieldValue] = {self.schema.primary_key_column: self._id}
        data.update(self._fields)
        return data

    # ── Field access ──────────────────────────────────────────────────────

    def get(self, key: str, cache: bool = True) -> FieldValue:
        """
        Read a field.

        Buffered values are returned as-is. On a saved record an unbuffered
        field is read from storage and buffered when `cache` is true and the
        read did not fail. A row that no longer exists reads as None.

        Raises
        ------
        FieldNotLoadedError
            If the field was never set and the record has not been saved.
        """
        if key in self.schema.primary_key:
            return self._id
        if key in self._fields:
            return self._fields[key]
        if self._id is None:
            raise FieldNotLoadedError(key)

        row = self._read([key])
        value = row.get(key) if row else None
        # A failed read also returns None.
        if cache and not getattr(self._storage, "last_error", None):
            self._fields[key] = value
        return value

    def set(self, key: str, value: FieldValue, save: bool = False) -> "Record":
        """
        Buffer a field value, optionally writing it to storage right away.

        With `save=True` only this field (and the refreshed updated timestamp)
        is written; the outcome is kept in `last_result`. Returns the record
        for chaining.
        """
        self._check_field_key(key)
        self._fields[key] = value
        if not save:
            return self

        if self._id is None:
            self.last_result = OperationResult.fail(
                Failure.NOT_PERSISTED, "record must be saved before fields can be written"
            )
            return self

        update: Dict[str, FieldValue] = {key: value}
        updated_column = self.schema.updated_column
        if updated_column and key != updated_column:
            update[updated_column] = current_time()
        self.last_result = self._update(update)
        return self

    def setup(self, data: Mapping[str, FieldValue]) -> "Record":
        """Buffer several fields at once without writing anything."""
        for key, value in data.items():
            self.set(key, value, save=False)
        return self

    # ── Persistence ───────────────────────────────────────────────────────

    def save(self) -> OperationResult:
        """
        Insert the record if it is new, otherwise update every buffered field.
        """
        if self._id is None:
            result = self._create()
        else:
            result = self._update(self._write_payload())
        self.last_result = result
        return result

    def hydrate(self) -> "Record":
        """
        Load every declared column of a saved record in a single read.

        Values read from storage replace buffered ones; buffered fields the
        read did not return are kept. Does nothing on a detached record.
        """
        columns = self.schema.data_columns
        if self._id is None:
            self.last_result = OperationResult.fail(Failure.NOT_PERSISTED)
            return self
        if not columns:
            self.last_result = OperationResult.success(rows_affected=0)
            return self

        row = self._read(columns)
        if not row:
            self.last_result = OperationResult.fail(
                Failure.STORAGE_FAILURE, f"no row found for id {self._id}"
            )
            return self

        for key, value in row.items():
            if key not in self.schema.primary_key:
                self._fields[key] = value
        self.last_result = OperationResult.success()
        log.debug("Record hydrated", extra={"table": self.table_name, "id": self._id})
        return self

    def delete(self) -> OperationResult:
        """
        Delete the row and reset this record to a fresh detached state.
        """
        if self._id is None:
            result = OperationResult.fail(Failure.NOT_PERSISTED, "record has not been saved")
            self.last_result = result
            return result

        column, fmt = self._primary_key()
        deleted = self._storage.delete(self.table_name, {column: self._id}, [fmt])
        if deleted:
            log.debug("Record deleted", extra={"table": self.table_name, "id": self._id})
            self._id = None
            self._fields = {}
            result = OperationResult.success(rows_affected=int(deleted))
        else:
            result = self._storage_failure("delete")
        self.last_result = result
        return result

    # ── Internals ─────────────────────────────────────────────────────────

    def _primary_key(self) -> Tuple[str, Format]:
        return self.schema.primary_key_column, self.schema.primary_key_format

    def _check_field_key(self, key: str) -> None:
        if key in self.schema.primary_key:
            raise ValueError(
                f"{key!r} is the primary key of {type(self).__name__}; it cannot be set as a field"
            )
        if not is_identifier(key):
            raise ValueError(f"field name {key!r} is not a plain SQL identifier")

    def _write_payload(self) -> Dict[str, FieldValue]:
        """
        Buffered fields ordered for a write: data fields first, then the
        created timestamp, then the updated timestamp refreshed to now.

        The buffer itself is left alone; the new timestamp is only kept once
        the write succeeds.
        """
        created_column = self.schema.created_column
        updated_column = self.schema.updated_column
        timestamps = {created_column, updated_column} - {None}

        payload = {k: v for k, v in self._fields.items() if k not in timestamps}
        if created_column and created_column in self._fields:
            payload[created_column] = self._fields[created_column]
        if updated_column:
            payload[updated_column] = current_time()
        return payload

    def _keep_written_timestamp(self, data: Mapping[str, FieldValue]) -> None:
        updated_column = self.schema.updated_column
        if updated_column and updated_column in data:
            self._fields[updated_column] = data[updated_column]

    def _read(self, columns: List[str]) -> Optional[Dict[str, Any]]:
        for column in columns:
            if not is_identifier(column):
                raise ValueError(f"field name {column!r} is not a plain SQL identifier")
        pk_column, _ = self._primary_key()
        query = "SELECT {columns} FROM {table} WHERE {pk} = %s".format(
            columns=", ".join(_quote(c) for c in columns),
            table=_quote(self.table_name),
            pk=_quote(pk_column),
        )
        return self._storage.get_row(query, (self._id,))

    def _create(self) -> OperationResult:
        if not self._fields:
            return OperationResult.fail(Failure.EMPTY_INSERT, "no fields to insert")

        payload = self._write_payload()
        formats = self.schema.formats_for(payload)
        inserted = self._storage.insert(
            self.table_name, payload, formats, returning=self.schema.primary_key_column
        )
        new_id = self._storage.insert_id if inserted == 1 else None
        if not new_id:
            return self._storage_failure("insert")

        self._id = int(new_id)
        self._keep_written_timestamp(payload)
        log.debug("Record inserted", extra={"table": self.table_name, "id": self._id})
        return OperationResult.success(rows_affected=1)

    def _update(self, data: Dict[str, FieldValue]) -> OperationResult:
        column, fmt = self._primary_key()
        updated = self._storage.update(
            self.table_name,
            data,
            {column: self._id},
            self.schema.formats_for(data),
            [fmt],
        )
        if not updated:
            return self._storage_failure("update")
        self._keep_written_timestamp(data)
        log.debug("Record updated", extra={"table": self.table_name, "id": self._id})
        return OperationResult.success(rows_affected=int(updated))

    def _storage_failure(self, operation: str) -> OperationResult:
        message = getattr(self._storage, "last_error", None) or f"{operation} affected no rows"
        log.warning(
            f"[RECORD {operation.upper()} FAILED] {type(self).__name__}",
            extra={"table": self.table_name, "id": self._id, "error": message},
        )
        return OperationResult.fail(Failure.STORAGE_FAILURE, message)


__all__ = ["FieldValue", "Record", "TIMESTAMP_FORMAT", "current_time"]
