"""
Pytest configuration for the user records service.

Provides fixtures for:
- Settings overrides for unit and integration tests
- In-memory stand-ins for the async pool and sync connections (unit tests)
- Database availability and table cleanup (integration tests)
"""

from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Generator, Optional

import psycopg
import pytest
from psycopg import errors
from psycopg.conninfo import conninfo_to_dict
from psycopg_pool import PoolClosed, PoolTimeout

from user_records import service as service_module
from user_records.config import Settings
from user_records.infrastructure import schema as schema_module

UNIT_PASSWORD = "unit-test-secret"


# ---------------------------------------------------------------------------
# In-memory storage engine
# ---------------------------------------------------------------------------


class FakeStorage:
    """Shared state behind the fake pool and fake sync connections."""

    def __init__(self) -> None:
        self.databases: set[str] = {"postgres"}
        self.tables: set[str] = set()
        self.rows: list[dict[str, Any]] = []
        self.next_id = 1
        self.queries: list[str] = []
        self.fail_with: Optional[Exception] = None

    def insert(self, name: str, email: str) -> dict[str, Any]:
        if any(row["email"] == email for row in self.rows):
            raise errors.UniqueViolation(
                'duplicate key value violates unique constraint "users_email_key"'
            )
        row = {
            "id": self.next_id,
            "name": name,
            "email": email,
            "created_at": datetime.now(timezone.utc),
        }
        self.next_id += 1
        self.rows.append(row)
        return row


class _FakeAsyncCursor:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self._rows = rows

    async def fetchall(self) -> list[dict[str, Any]]:
        return list(self._rows)

    async def fetchone(self) -> Optional[dict[str, Any]]:
        return self._rows[0] if self._rows else None


class _FakeAsyncConnection:
    def __init__(self, storage: FakeStorage) -> None:
        self._storage = storage

    async def execute(self, query: str, params: Optional[tuple] = None) -> _FakeAsyncCursor:
        self._storage.queries.append(query)
        # Yield so concurrent requests interleave like real round trips.
        await asyncio.sleep(0)
        if self._storage.fail_with is not None:
            raise self._storage.fail_with
        if query.strip() == "SELECT 1":
            return _FakeAsyncCursor([{"?column?": 1}])
        if query.startswith("SELECT"):
            return _FakeAsyncCursor([dict(row) for row in self._storage.rows])
        if query.startswith("INSERT"):
            name, email = params
            row = self._storage.insert(name, email)
            return _FakeAsyncCursor([{k: row[k] for k in ("id", "name", "email")}])
        raise AssertionError(f"unexpected query: {query}")


class FakeAsyncPool:
    """Stands in for psycopg_pool.AsyncConnectionPool."""

    def __init__(self, storage: FakeStorage, reachable: bool = True) -> None:
        self.storage = storage
        self.reachable = reachable
        self.opened = False
        self.closed = False
        self.acquired = 0
        self.released = 0

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[_FakeAsyncConnection]:
        if self.closed:
            raise PoolClosed("the pool 'user-records' is already closed")
        if not self.reachable:
            raise PoolTimeout(
                f"couldn't get a connection after 10.00 sec (password={UNIT_PASSWORD})"
            )
        self.acquired += 1
        try:
            yield _FakeAsyncConnection(self.storage)
        finally:
            self.released += 1


class _FakeSyncCursor:
    def __init__(self, row: Optional[tuple]) -> None:
        self._row = row

    def fetchone(self) -> Optional[tuple]:
        return self._row


class FakeSyncConnection:
    """Stands in for an autocommit psycopg.Connection used by the initializer."""

    def __init__(self, storage: FakeStorage, dbname: str) -> None:
        self.storage = storage
        self.dbname = dbname
        self.closed = False

    def __enter__(self) -> "FakeSyncConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.closed = True

    def execute(self, query: str, params: Optional[tuple] = None) -> _FakeSyncCursor:
        query = " ".join(query.split())
        self.storage.queries.append(query)
        if self.storage.fail_with is not None:
            raise self.storage.fail_with
        if query.startswith("SELECT 1 FROM pg_database"):
            return _FakeSyncCursor((1,) if params[0] in self.storage.databases else None)
        if query.startswith("CREATE DATABASE"):
            name = query.split('"')[1]
            if name in self.storage.databases:
                raise errors.DuplicateDatabase(f'database "{name}" already exists')
            self.storage.databases.add(name)
            return _FakeSyncCursor(None)
        if query.startswith("CREATE TABLE IF NOT EXISTS"):
            self.storage.tables.add(query.split('"')[1])
            return _FakeSyncCursor(None)
        if query.startswith("INSERT INTO"):
            self.storage.insert(*params)
            return _FakeSyncCursor(None)
        raise AssertionError(f"unexpected query: {query}")


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def unit_settings() -> Settings:
    """Settings with a recognizable password so redaction can be asserted."""
    return Settings(
        db_host="db.internal",
        db_port=5432,
        db_user="app",
        db_password=UNIT_PASSWORD,
        db_name="simple_webapp",
        db_table="users",
        log_level="DEBUG",
        seed_sample_data=True,
    )


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def fake_pool(monkeypatch, fake_storage: FakeStorage) -> FakeAsyncPool:
    """Route RecordService pool creation to an in-memory pool."""
    pool = FakeAsyncPool(fake_storage)
    monkeypatch.setattr(service_module, "create_async_pool", lambda settings: pool)
    return pool


@pytest.fixture
def fake_connect(monkeypatch, fake_storage: FakeStorage) -> list[FakeSyncConnection]:
    """
    Route initializer connections to the in-memory storage.

    Returns the list of connections handed out, so tests can check they were
    all closed. Connecting to an unknown database fails like libpq does.
    """
    handed_out: list[FakeSyncConnection] = []

    def connect(conninfo: str) -> FakeSyncConnection:
        dbname = conninfo_to_dict(conninfo)["dbname"]
        if dbname not in fake_storage.databases:
            raise psycopg.OperationalError(f'FATAL: database "{dbname}" does not exist')
        conn = FakeSyncConnection(fake_storage, dbname)
        handed_out.append(conn)
        return conn

    monkeypatch.setattr(schema_module, "get_sync_connection", connect)
    return handed_out


# ---------------------------------------------------------------------------
# Integration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture for integration tests.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "user_records_test"),
        db_table=os.getenv("DB_TABLE", "users"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def db_connection_available(test_settings: Settings) -> bool:
    """
    Check if the PostgreSQL server is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(
            test_settings.conninfo(test_settings.db_admin_database), connect_timeout=5
        ) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def initialized_db(test_settings: Settings, db_connection_available: bool) -> Settings:
    """
    Run the schema initializer once per session against the real server.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")
    schema_module.SchemaInitializer(test_settings).initialize()
    return test_settings


@pytest.fixture
def clean_users_table(initialized_db: Settings) -> Generator[Settings, None, None]:
    """
    Empty the records table around each test function for isolation.
    """
    table = initialized_db.db_table

    def truncate() -> None:
        with psycopg.connect(initialized_db.conninfo(), autocommit=True) as conn:
            conn.execute(f'TRUNCATE TABLE "{table}" RESTART IDENTITY')

    truncate()
    yield initialized_db
    truncate()
