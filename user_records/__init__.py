"""
User Records - a minimal record-management service over PostgreSQL.

Clients submit and list "user" records (name, email, creation timestamp)
through a small HTTP API. The package provides:

- an idempotent schema initializer (database, table, sample rows)
- a record service that owns one connection pool for the process lifetime
- a FastAPI application exposing health/list/create endpoints
- a typer CLI to bootstrap the schema and serve the API
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from user_records.api import create_app
from user_records.config import Settings, get_settings
from user_records.domain import (
    CreatedRecord,
    Record,
    RecordServiceError,
    SeedConflict,
    StorageError,
    StorageUnavailable,
    ValidationError,
)
from user_records.infrastructure.schema import InitReport, SchemaInitializer, SeedOutcome
from user_records.service import RecordService, ServiceState
from user_records.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "Record",
    "CreatedRecord",
    "RecordServiceError",
    "ValidationError",
    "StorageError",
    "StorageUnavailable",
    "SeedConflict",
    # Schema bootstrap
    "SchemaInitializer",
    "InitReport",
    "SeedOutcome",
    # Service / HTTP
    "RecordService",
    "ServiceState",
    "create_app",
    # Logging
    "configure_logging",
    "get_logger",
]
