"""
Infrastructure package for the user records service.

Centralizes database connectivity concerns (connection factory, pooling) and
the schema bootstrap. Keep this layer focused on I/O and resource management,
decoupled from the HTTP layer.
"""

from user_records.infrastructure.db_factory import create_async_pool, get_sync_connection
from user_records.infrastructure.schema import (
    SAMPLE_ROWS,
    InitReport,
    SchemaInitializer,
    SeedOutcome,
)

__all__ = [
    "create_async_pool",
    "get_sync_connection",
    "SAMPLE_ROWS",
    "InitReport",
    "SchemaInitializer",
    "SeedOutcome",
]
