"""
Storage client contract and its PostgreSQL implementation.

Records never talk to a driver directly. They are handed a StorageClient at
construction and issue at most one call on it per operation. Failures are
reported the way the calling layer expects them: a zero row count (or None
for reads) plus `last_error`, never an exception.
"""

from __future__ import annotations

import threading
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from rowstore.config import Settings, get_settings
from rowstore.infrastructure.db_factory import apply_statement_timeout, get_sync_pool
from rowstore.utils.logging import get_logger

log = get_logger(__name__)

Query = Union[str, sql.Composable]

DEFAULT_FORMAT = "%s"


@runtime_checkable
class StorageClient(Protocol):
    """
    Minimal database client a Record needs.

    Attributes
    ----------
    prefix : str
        Process-wide table name prefix.
    insert_id : int
        Identifier generated by the last successful insert. Implementations
        shared across threads must keep it per thread, because a Record reads
        it right after its own insert call.
    last_error : str | None
        Description of the last failed statement, if any.
    """

    prefix: str
    insert_id: int
    last_error: Optional[str]

    def insert(
        self,
        table: str,
        fields: Mapping[str, Any],
        formats: Sequence[str],
        returning: Optional[str] = None,
    ) -> int:
        """Insert one row; return the number of rows affected.

        `returning` names the generated key column to capture into `insert_id`.
        """
        ...

    def update(
        self,
        table: str,
        fields: Mapping[str, Any],
        where: Mapping[str, Any],
        field_formats: Sequence[str],
        where_formats: Sequence[str],
    ) -> int:
        """Update rows matching `where`; return the number of rows affected."""
        ...

    def delete(self, table: str, where: Mapping[str, Any], where_formats: Sequence[str]) -> int:
        """Delete rows matching `where`; return the number of rows affected."""
        ...

    def get_row(self, query: Query, params: Sequence[Any]) -> Optional[Dict[str, Any]]:
        """Run `query` and return its first row as a dict, or None."""
        ...


def coerce_value(value: Any, fmt: str) -> Any:
    """
    Cast `value` to the Python type matching a storage format.

    None passes through untouched so nullable columns stay NULL.
    """
    if value is None:
        return None
    if fmt == "%d":
        return int(value)
    if fmt == "%f":
        return float(value)
    return str(value)


def _coerce_all(values: Sequence[Any], formats: Sequence[str]) -> List[Any]:
    return [
        coerce_value(value, formats[i] if i < len(formats) else DEFAULT_FORMAT)
        for i, value in enumerate(values)
    ]


def _assignments(columns: Sequence[str], joiner: str) -> sql.Composed:
    return sql.SQL(joiner).join(
        sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder())
        for column in columns
    )


class PsycopgStorageClient:
    """
    StorageClient backed by a psycopg ConnectionPool.

    Every call borrows one pooled connection for a single statement; the pool
    commits on success and rolls back on error. `insert_id` and `last_error`
    are kept per thread so one client can serve a multi-threaded app.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        prefix: str = "",
        id_column: str = "id",
        statement_timeout_ms: int = 0,
    ) -> None:
        self._pool = pool
        self.prefix = prefix
        self.id_column = id_column
        self.statement_timeout_ms = statement_timeout_ms
        self._state = threading.local()

    @property
    def insert_id(self) -> int:
        return getattr(self._state, "insert_id", 0)

    @insert_id.setter
    def insert_id(self, value: int) -> None:
        self._state.insert_id = value

    @property
    def last_error(self) -> Optional[str]:
        return getattr(self._state, "last_error", None)

    @last_error.setter
    def last_error(self, value: Optional[str]) -> None:
        self._state.last_error = value

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PsycopgStorageClient":
        """Build a client on the shared pool using configured prefix and timeout."""
        settings = settings or get_settings()
        return cls(
            get_sync_pool(min_size=settings.db_pool_min_size, max_size=settings.db_pool_max_size),
            prefix=settings.db_table_prefix,
            statement_timeout_ms=settings.db_statement_timeout_ms,
        )

    def _run(
        self,
        query: Query,
        params: Sequence[Any],
        fetch: bool = False,
        key: Optional[str] = None,
    ) -> Tuple[int, Optional[Dict[str, Any]]]:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                apply_statement_timeout(cur, self.statement_timeout_ms)
                cur.execute(query, params)
                row = cur.fetchone() if fetch else None
                # Raised inside the borrowed connection so the pool rolls back.
                if key is not None and row is not None and key not in row:
                    raise KeyError(key)
                return cur.rowcount, row

    def _fail(self, operation: str, table: Optional[str], exc: Exception) -> None:
        self.last_error = f"{type(exc).__name__}: {exc}"
        log.exception(
            f"[STORAGE FAILED] {operation}",
            extra={"operation": operation, "table": table, "error": self.last_error},
        )

    def insert(
        self,
        table: str,
        fields: Mapping[str, Any],
        formats: Sequence[str],
        returning: Optional[str] = None,
    ) -> int:
        if not fields:
            return 0
        key_column = returning or self.id_column
        columns = list(fields)
        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING {id}").format(
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
            values=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
            id=sql.Identifier(key_column),
        )
        try:
            params = _coerce_all(list(fields.values()), formats)
            rowcount, row = self._run(query, params, fetch=True, key=key_column)
            new_id = int(row[key_column]) if row is not None else 0
        except (psycopg.Error, KeyError, TypeError, ValueError) as exc:
            self._fail("insert", table, exc)
            return 0
        self.last_error = None
        self.insert_id = new_id
        return rowcount

    def update(
        self,
        table: str,
        fields: Mapping[str, Any],
        where: Mapping[str, Any],
        field_formats: Sequence[str],
        where_formats: Sequence[str],
    ) -> int:
        if not fields or not where:
            return 0
        query = sql.SQL("UPDATE {table} SET {assignments} WHERE {conditions}").format(
            table=sql.Identifier(table),
            assignments=_assignments(list(fields), ", "),
            conditions=_assignments(list(where), " AND "),
        )
        try:
            params = _coerce_all(list(fields.values()), field_formats) + _coerce_all(
                list(where.values()), where_formats
            )
            rowcount, _ = self._run(query, params)
        except (psycopg.Error, TypeError, ValueError) as exc:
            self._fail("update", table, exc)
            return 0
        self.last_error = None
        return rowcount

    def delete(self, table: str, where: Mapping[str, Any], where_formats: Sequence[str]) -> int:
        if not where:
            return 0
        query = sql.SQL("DELETE FROM {table} WHERE {conditions}").format(
            table=sql.Identifier(table),
            conditions=_assignments(list(where), " AND "),
        )
        try:
            params = _coerce_all(list(where.values()), where_formats)
            rowcount, _ = self._run(query, params)
        except (psycopg.Error, TypeError, ValueError) as exc:
            self._fail("delete", table, exc)
            return 0
        self.last_error = None
        return rowcount

    def get_row(self, query: Query, params: Sequence[Any]) -> Optional[Dict[str, Any]]:
        try:
            _, row = self._run(query, params, fetch=True)
        except psycopg.Error as exc:
            self._fail("get_row", None, exc)
            return None
        self.last_error = None
        return dict(row) if row is not None else None


__all__ = ["PsycopgStorageClient", "StorageClient", "coerce_value"]
