"""
Record API service: pool lifecycle plus the list/create/health operations.

The service owns exactly one AsyncConnectionPool for its lifetime. It is
created once by `start()`, probed with a single acquire/release, and closed by
`stop()`. Each operation performs one storage round trip on a pooled
connection; the connection goes back to the pool on every exit path.
"""

from __future__ import annotations

import enum
from typing import Any, List, Optional

import psycopg
from psycopg_pool import AsyncConnectionPool

from user_records.config import Settings
from user_records.domain.errors import StorageError, StorageUnavailable, ValidationError, redact
from user_records.domain.models import CreatedRecord, HealthStatus, Record
from user_records.infrastructure.db_factory import create_async_pool
from user_records.utils.logging import get_logger

log = get_logger(__name__)

NOT_INITIALIZED = "Database connection not initialized"


class ServiceState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    POOL_ESTABLISHING = "pool_establishing"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"
    FAILED = "failed"


class RecordService:
    """
    Lifecycle and operations of the record API.

    Parameters
    ----------
    settings : Settings
        Connection, pool and table configuration.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.state = ServiceState.UNINITIALIZED
        self._pool: Optional[AsyncConnectionPool] = None
        self._table = settings.db_table

    @property
    def ready(self) -> bool:
        return self.state is ServiceState.READY

    def _redact(self, text: str) -> str:
        return redact(text, [self.settings.conninfo()])

    async def start(self) -> None:
        """
        Open the pool and confirm connectivity with one acquire/release.

        Raises
        ------
        StorageUnavailable
            If the test connection fails. The service is left FAILED; there is
            no retry, restarting is up to the process supervisor.
        """
        if self.state is not ServiceState.UNINITIALIZED:
            raise RuntimeError(f"Cannot start service in state {self.state.value!r}")

        self.state = ServiceState.POOL_ESTABLISHING
        pool = create_async_pool(self.settings)
        try:
            await pool.open()
            async with pool.connection() as conn:
                await conn.execute("SELECT 1")
        except (psycopg.Error, OSError) as exc:
            self.state = ServiceState.FAILED
            log.error("Error connecting to the database: %s", self._redact(str(exc)))
            try:
                await pool.close()
            except Exception as close_exc:
                log.warning(
                    "Error closing pool after failed start: %s", self._redact(str(close_exc))
                )
            raise StorageUnavailable(
                "Error connecting to the database", details=self._redact(str(exc))
            ) from exc

        self._pool = pool
        self.state = ServiceState.READY
        log.info("Successfully connected to the database")

    async def stop(self) -> None:
        """Close the pool. Safe to call more than once."""
        if self._pool is None:
            return
        self.state = ServiceState.SHUTTING_DOWN
        pool, self._pool = self._pool, None
        try:
            await pool.close()
        finally:
            self.state = ServiceState.STOPPED
        log.info("Connection pool closed")

    def health_check(self) -> HealthStatus:
        """Liveness only; never touches storage."""
        return HealthStatus(status="healthy")

    def _require_pool(self, error: str) -> AsyncConnectionPool:
        if self._pool is None or not self.ready:
            raise StorageError(error, details=NOT_INITIALIZED)
        return self._pool

    def _storage_error(self, error: str, exc: Exception) -> StorageError:
        details = self._redact(str(exc))
        log.error("%s: %s", error, details, exc_info=True)
        return StorageError(error, details=details, sqlstate=getattr(exc, "sqlstate", None))

    async def list_records(self) -> List[Record]:
        """
        Return every record, in whatever order the storage engine yields them.

        Raises
        ------
        StorageError
            If the pool is not established or the query fails.
        """
        error = "Error fetching users"
        pool = self._require_pool(error)
        try:
            async with pool.connection() as conn:
                cur = await conn.execute(
                    f'SELECT id, name, email, created_at FROM "{self._table}"'
                )
                rows: List[dict[str, Any]] = await cur.fetchall()
        except (psycopg.Error, OSError) as exc:
            raise self._storage_error(error, exc) from exc

        log.debug("Fetched %d users", len(rows))
        return [Record(**row) for row in rows]

    async def create_record(self, name: Any, email: Any) -> CreatedRecord:
        """
        Validate and insert a record; `created_at` is defaulted by the engine.

        Raises
        ------
        ValidationError
            If `name` or `email` is missing, not a string, or "". Storage is not touched.
        StorageError
            If the pool is not established or the insert is rejected
            (including a duplicate email, reported with sqlstate 23505).
        """
        if not _present(name) or not _present(email):
            raise ValidationError("Name and email are required")

        error = "Error adding user"
        pool = self._require_pool(error)
        try:
            async with pool.connection() as conn:
                cur = await conn.execute(
                    f'INSERT INTO "{self._table}" (name, email) VALUES (%s, %s) '
                    "RETURNING id, name, email",
                    (name, email),
                )
                row = await cur.fetchone()
        except (psycopg.Error, OSError) as exc:
            raise self._storage_error(error, exc) from exc

        log.info("Added user", extra={"record_id": row["id"]})
        return CreatedRecord(**row)


def _present(value: Any) -> bool:
    # whitespace-only values are accepted as-is
    return isinstance(value, str) and value != ""


__all__ = ["NOT_INITIALIZED", "RecordService", "ServiceState"]
