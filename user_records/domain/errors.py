"""
Error taxonomy for the user records service.

Every failure the service can surface is a RecordServiceError carrying a
machine-readable `code` and the HTTP status it maps to. The API layer renders
them; nothing below the API layer knows about HTTP beyond `status_code`.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional, Sequence

# libpq key/value form, quoted or bare: password=secret, password = 's e c'
_PASSWORD_TOKEN = re.compile(
    r"(\bpassword\s*=\s*)('(?:[^'\\]|\\.)*'|[^\s,;)]+)", re.IGNORECASE
)


class RecordServiceError(Exception):
    """Base class for all service errors."""

    code: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


class ValidationError(RecordServiceError):
    """Client input failed the required-field checks. Never reaches storage."""

    code = "validation_error"
    status_code = 400


class StorageError(RecordServiceError):
    """
    A single round trip to the storage engine failed.

    `details` holds the engine's message (already redacted), `sqlstate` the
    engine's SQLSTATE when one was reported (e.g. "23505" for a duplicate email).
    """

    code = "storage_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        sqlstate: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.details = details
        self.sqlstate = sqlstate

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.details is not None:
            payload["details"] = self.details
        if self.sqlstate is not None:
            payload["sqlstate"] = self.sqlstate
        return payload


class StorageUnavailable(StorageError):
    """The storage engine could not be reached at startup. Fatal."""

    code = "storage_unavailable"
    status_code = 503


class SeedConflict(StorageError):
    """A sample row already exists. Recorded in a SeedOutcome, never raised."""

    code = "seed_conflict"


def redact(text: str, conninfos: Sequence[str]) -> str:
    """
    Mask connection strings and `password=...` tokens in `text`.

    Only whole conninfo strings and password assignments are replaced, so a
    user or database that happens to share the password's spelling stays
    readable.
    """
    for conninfo in sorted((c for c in conninfos if c), key=len, reverse=True):
        text = text.replace(conninfo, "***")
    return _PASSWORD_TOKEN.sub(r"\1***", text)


__all__ = [
    "RecordServiceError",
    "ValidationError",
    "StorageError",
    "StorageUnavailable",
    "SeedConflict",
    "redact",
]
