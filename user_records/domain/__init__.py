"""
Domain package for the user records service.

Exports the record models and the error taxonomy. Keep this package focused on
data definitions and validation concerns; no I/O lives here.
"""

from user_records.domain.errors import (
    RecordServiceError,
    SeedConflict,
    StorageError,
    StorageUnavailable,
    ValidationError,
    redact,
)
from user_records.domain.models import CreatedRecord, HealthStatus, NewRecord, Record

__all__ = [
    "Record",
    "NewRecord",
    "CreatedRecord",
    "HealthStatus",
    "RecordServiceError",
    "ValidationError",
    "StorageError",
    "StorageUnavailable",
    "SeedConflict",
    "redact",
]
