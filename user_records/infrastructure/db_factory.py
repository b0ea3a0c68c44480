"""
Database connection factory utilities for the user records service.

Provides the two ways this service talks to PostgreSQL:

- short-lived sync connections for the one-off schema bootstrap, with retry
  logic for transient connection failures using tenacity;
- an async connection pool for the HTTP service. The pool is handed to its
  owner unopened; opening, health-probing and closing it is the owner's job.
"""

from __future__ import annotations

import psycopg
from psycopg import Connection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from user_records.config import Settings


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(conninfo: str) -> Connection:
    """
    Acquire a dedicated autocommit connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection
    errors, which covers a database container that is still booting when the
    bootstrap step runs.

    Parameters
    ----------
    conninfo : str
        libpq connection string.

    Returns
    -------
    Connection
        A new psycopg connection instance in autocommit mode.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(conninfo, autocommit=True)


def create_async_pool(settings: Settings) -> AsyncConnectionPool:
    """
    Build an (unopened) asynchronous connection pool for the service database.

    Connections are autocommit so every statement is its own transaction, and
    rows come back as dicts.

    Parameters
    ----------
    settings : Settings
        Source of the DSN, pool bounds and acquisition timeout.

    Returns
    -------
    AsyncConnectionPool
        The pool instance; call ``await pool.open()`` before use.
    """
    return AsyncConnectionPool(
        conninfo=settings.conninfo(),
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        timeout=settings.db_pool_timeout,
        kwargs={"autocommit": True, "row_factory": dict_row},
        open=False,
        name="user-records",
    )


__all__ = [
    "get_sync_connection",
    "create_async_pool",
]
