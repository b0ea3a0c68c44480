"""
FastAPI application for the user records service.

Exposes:
- GET  /health      liveness, no storage access
- GET  /api/users   list every record
- POST /api/users   create a record from {name, email}

The RecordService is owned by the application lifespan and handed to route
handlers through a dependency; there is no module-level pool.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from user_records.config import Settings, get_settings
from user_records.domain.errors import RecordServiceError, ValidationError
from user_records.domain.models import CreatedRecord, HealthStatus, NewRecord, Record
from user_records.service import RecordService
from user_records.utils.logging import get_logger

log = get_logger(__name__)

MISSING_FIELDS = "Name and email are required"


def get_record_service(request: Request) -> RecordService:
    return request.app.state.record_service


async def _service_error_handler(request: Request, exc: RecordServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Malformed bodies are client input errors like missing fields: 400, not 422.
    payload = ValidationError(MISSING_FIELDS).to_payload()
    payload["details"] = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
    ]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=payload)


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[RecordService] = None,
) -> FastAPI:
    """
    Build the application.

    Parameters
    ----------
    settings : Settings, optional
        Defaults to the cached environment settings.
    service : RecordService, optional
        Pre-built service (tests); otherwise one is created from settings.
    """
    settings = settings or get_settings()
    service = service or RecordService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # A StorageUnavailable raised here aborts startup; uvicorn exits non-zero.
        await service.start()
        log.info("Database configuration: %s", settings.safe_summary())
        try:
            yield
        finally:
            await service.stop()

    app = FastAPI(title="User Records API", version="0.1.0", lifespan=lifespan)
    app.state.record_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RecordServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    @app.get("/health", response_model=HealthStatus)
    async def health(svc: RecordService = Depends(get_record_service)) -> HealthStatus:
        return svc.health_check()

    @app.get("/api/users", response_model=List[Record])
    async def list_users(svc: RecordService = Depends(get_record_service)) -> List[Record]:
        return await svc.list_records()

    @app.post(
        "/api/users",
        response_model=CreatedRecord,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_user(
        body: NewRecord,
        svc: RecordService = Depends(get_record_service),
    ) -> CreatedRecord:
        return await svc.create_record(body.name, body.email)

    return app


__all__ = ["create_app", "get_record_service"]
