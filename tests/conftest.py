"""
Pytest configuration for rowstore.

Provides fixtures for:
- An in-memory storage client that records every call it receives
- A deterministic clock for timestamp columns
- Settings and database connection management for integration tests
"""

from __future__ import annotations

import os
import re
from itertools import count
from typing import Any, Dict, Generator, List, Mapping, Optional, Sequence, Tuple

import psycopg
import pytest

from rowstore.config import Settings
from rowstore.domain import record as record_module

_SELECT = re.compile(r'^SELECT (?P<columns>.+) FROM "(?P<table>\w+)" WHERE "(?P<pk>\w+)" = %s$')


class FakeStorage:
    """
    StorageClient test double backed by dicts.

    Writes are echoed back by reads. Every call is appended to `calls` as
    `(operation, table, *arguments)`. Add an operation name to `failing`
    to make it report zero affected rows (or, for `get_row`, no row).
    """

    def __init__(self, prefix: str = "wp_") -> None:
        self.prefix = prefix
        self.insert_id = 0
        self.last_error: Optional[str] = None
        self.calls: List[Tuple[Any, ...]] = []
        self.tables: Dict[str, Dict[int, Dict[str, Any]]] = {}
        self.failing: set[str] = set()
        self.returning: List[Optional[str]] = []
        self._ids = count(1)

    def seed(self, table: str, row_id: int, **values: Any) -> None:
        self.tables.setdefault(table, {})[row_id] = {"id": row_id, **values}

    def row(self, table: str, row_id: int) -> Optional[Dict[str, Any]]:
        return self.tables.get(table, {}).get(row_id)

    def calls_for(self, operation: str) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == operation]

    def _fails(self, operation: str) -> bool:
        if operation in self.failing:
            self.last_error = f"{operation} rejected by test"
            return True
        self.last_error = None
        return False

    def insert(
        self,
        table: str,
        fields: Mapping[str, Any],
        formats: Sequence[str],
        returning: Optional[str] = None,
    ) -> int:
        self.calls.append(("insert", table, dict(fields), list(formats)))
        self.returning.append(returning)
        if self._fails("insert"):
            return 0
        new_id = next(self._ids)
        self.seed(table, new_id, **fields)
        self.insert_id = new_id
        return 1

    def update(
        self,
        table: str,
        fields: Mapping[str, Any],
        where: Mapping[str, Any],
        field_formats: Sequence[str],
        where_formats: Sequence[str],
    ) -> int:
        self.calls.append(
            ("update", table, dict(fields), dict(where), list(field_formats), list(where_formats))
        )
        if self._fails("update"):
            return 0
        row = self.row(table, next(iter(where.values())))
        if row is None:
            return 0
        row.update(fields)
        return 1

    def delete(self, table: str, where: Mapping[str, Any], where_formats: Sequence[str]) -> int:
        self.calls.append(("delete", table, dict(where), list(where_formats)))
        if self._fails("delete"):
            return 0
        removed = self.tables.get(table, {}).pop(next(iter(where.values())), None)
        return 1 if removed is not None else 0

    def get_row(self, query: str, params: Sequence[Any]) -> Optional[Dict[str, Any]]:
        self.calls.append(("get_row", query, tuple(params)))
        match = _SELECT.match(query)
        assert match, f"unexpected query: {query}"
        if self._fails("get_row"):
            return None
        row = self.row(match["table"], params[0])
        if row is None:
            return None
        columns = re.findall(r'"(\w+)"', match["columns"])
        return {column: row.get(column) for column in columns}


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def frozen_clock(monkeypatch) -> List[str]:
    """
    Replace the record clock with a sequence of distinct timestamps.

    Returns the list of timestamps handed out so far.
    """
    issued: List[str] = []
    ticks = count(1)

    def fake_now() -> str:
        stamp = f"2026-01-01 00:00:{next(ticks):02d}"
        issued.append(stamp)
        return stamp

    monkeypatch.setattr(record_module, "current_time", fake_now)
    return issued


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "rowstore"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()
