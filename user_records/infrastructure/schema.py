"""
Schema bootstrap for the user records service.

Brings PostgreSQL to a known-good state: the service database exists, the
records table exists, and (optionally) a few sample rows are present. Every
step is safe to re-run. The initializer keeps no connection open once a step
returns.

Usage:
    from user_records.infrastructure.schema import SchemaInitializer

    report = SchemaInitializer(get_settings()).initialize()
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

import psycopg
from psycopg import Connection, errors

from user_records.config import IDENTIFIER_PATTERN, Settings
from user_records.domain.errors import SeedConflict, StorageError, StorageUnavailable, redact
from user_records.infrastructure.db_factory import get_sync_connection
from user_records.utils.logging import get_logger

log = get_logger(__name__)

SAMPLE_ROWS: Tuple[Tuple[str, str], ...] = (
    ("John Doe", "john@example.com"),
    ("Jane Smith", "jane@example.com"),
    ("Bob Wilson", "bob@example.com"),
)


@dataclass(frozen=True)
class SeedOutcome:
    """
    Result of a best-effort seed. Constructing one is the only way seeding
    reports problems; it never raises.
    """

    inserted: int = 0
    conflicts: Tuple[SeedConflict, ...] = field(default_factory=tuple)
    failures: Tuple[StorageError, ...] = field(default_factory=tuple)

    @property
    def skipped(self) -> int:
        return len(self.conflicts)

    @property
    def failed(self) -> int:
        return len(self.failures)


@dataclass(frozen=True)
class InitReport:
    database_created: bool
    seed: Optional[SeedOutcome] = None


def _checked_identifier(name: str) -> str:
    if not re.fullmatch(IDENTIFIER_PATTERN, name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


class SchemaInitializer:
    """
    Idempotent database/table/seed bootstrap.

    Parameters
    ----------
    settings : Settings
        Connection parameters plus the target database and table names.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _redact(self, text: str) -> str:
        s = self.settings
        return redact(
            text,
            [s.conninfo(), s.conninfo(s.db_admin_database)],
        )

    def _connect(self, database: str) -> Connection:
        try:
            return get_sync_connection(self.settings.conninfo(database))
        except psycopg.Error as exc:
            log.error(
                "Cannot connect to database %r at %s:%s",
                database,
                self.settings.db_host,
                self.settings.db_port,
            )
            raise StorageUnavailable(
                "Database connection failed", details=self._redact(str(exc))
            ) from exc

    def ensure_database(self, name: Optional[str] = None) -> bool:
        """
        Create the service database if it is absent.

        Returns
        -------
        bool
            True if the database was created, False if it already existed.

        Raises
        ------
        StorageUnavailable
            If the maintenance database cannot be reached.
        StorageError
            If the existence check or CREATE DATABASE fails.
        """
        name = _checked_identifier(name or self.settings.db_name)
        with self._connect(self.settings.db_admin_database) as conn:
            try:
                row = conn.execute(
                    "SELECT 1 FROM pg_database WHERE datname = %s", (name,)
                ).fetchone()
                if row is not None:
                    log.info("Database %r already exists", name)
                    return False
                # CREATE DATABASE has no IF NOT EXISTS and cannot run in a transaction.
                conn.execute(f'CREATE DATABASE "{name}"')
            except errors.DuplicateDatabase:
                log.info("Database %r was created concurrently", name)
                return False
            except psycopg.Error as exc:
                raise StorageError(
                    "Error creating database",
                    details=self._redact(str(exc)),
                    sqlstate=exc.sqlstate,
                ) from exc
        log.info("Created database %r", name)
        return True

    def ensure_table(self, name: Optional[str] = None) -> None:
        """
        Create the records table if it is absent.

        Raises
        ------
        StorageUnavailable
            If the service database cannot be reached.
        StorageError
            If the DDL fails.
        """
        name = _checked_identifier(name or self.settings.db_table)
        with self._connect(self.settings.db_name) as conn:
            try:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS "{name}" (
                        id INTEGER GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
                        name VARCHAR(255) NOT NULL,
                        email VARCHAR(255) NOT NULL UNIQUE,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                    """
                )
            except psycopg.Error as exc:
                raise StorageError(
                    "Error creating table",
                    details=self._redact(str(exc)),
                    sqlstate=exc.sqlstate,
                ) from exc
        log.info("Table %r is ready", name)

    def seed_sample_data(self, rows: Iterable[Sequence[str]] = SAMPLE_ROWS) -> SeedOutcome:
        """
        Best-effort insert of example records.

        Each row is inserted on its own so one existing email does not block
        the rest. Duplicates are recorded as SeedConflict and any other failure
        as StorageError; both are logged and returned, never raised.
        """
        table = self.settings.db_table
        inserted = 0
        conflicts: list[SeedConflict] = []
        failures: list[StorageError] = []

        try:
            conn = self._connect(self.settings.db_name)
        except StorageUnavailable as exc:
            log.warning("Skipping sample data: %s (%s)", exc.message, exc.details)
            return SeedOutcome(failures=(exc,))

        with conn:
            for name, email in rows:
                try:
                    conn.execute(
                        f'INSERT INTO "{table}" (name, email) VALUES (%s, %s)',
                        (name, email),
                    )
                    inserted += 1
                except errors.UniqueViolation as exc:
                    conflicts.append(
                        SeedConflict(
                            "Sample row already exists",
                            details=self._redact(str(exc)),
                            sqlstate=exc.sqlstate,
                        )
                    )
                    log.info("Sample data already exists for %s, skipping", email)
                except psycopg.Error as exc:
                    failures.append(
                        StorageError(
                            "Sample data insert error",
                            details=self._redact(str(exc)),
                            sqlstate=exc.sqlstate,
                        )
                    )
                    log.warning("Sample data insert error for %s: %s", email, self._redact(str(exc)))

        outcome = SeedOutcome(
            inserted=inserted, conflicts=tuple(conflicts), failures=tuple(failures)
        )
        log.info(
            "Sample data: inserted=%d skipped=%d failed=%d",
            outcome.inserted,
            outcome.skipped,
            outcome.failed,
        )
        return outcome

    def initialize(self) -> InitReport:
        """
        Run the full bootstrap: database, table, then (optionally) sample data.

        Failures creating the database or table propagate; seeding never fails.
        """
        created = self.ensure_database()
        self.ensure_table()
        seed = self.seed_sample_data() if self.settings.seed_sample_data else None
        log.info("Database initialized successfully")
        return InitReport(database_created=created, seed=seed)


__all__ = ["SAMPLE_ROWS", "InitReport", "SchemaInitializer", "SeedOutcome"]
