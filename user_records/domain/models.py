"""
Domain models for the user records service.

Defines the record schema aligned with the table created by the schema
initializer, plus the request/response payloads of the HTTP API.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Record(BaseModel):
    """
    Representation of a single row in the records table.
    """

    id: int = Field(..., description="Primary key, assigned by the storage engine.")
    name: str = Field(..., description="Display name.")
    email: str = Field(..., description="Email address, unique across records.")
    created_at: datetime = Field(
        ...,
        serialization_alias="createdAt",
        description="Insertion timestamp, defaulted by the storage engine.",
    )

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }


class NewRecord(BaseModel):
    """
    Body of a create request. Fields are optional here; presence and
    non-emptiness are checked by the service so the failure maps to 400.
    """

    name: Optional[str] = None
    email: Optional[str] = None


class CreatedRecord(BaseModel):
    id: int
    name: str
    email: str


class HealthStatus(BaseModel):
    status: str = "healthy"


__all__ = ["Record", "NewRecord", "CreatedRecord", "HealthStatus"]
