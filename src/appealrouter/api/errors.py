"""Exception handlers for errors raised outside an OperationResult."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from appealrouter.core.exceptions import StorageError
from appealrouter.models.results import FaultKind


def setup_error_handlers(app: FastAPI) -> None:
    """Register handlers so read-only endpoints fail like transactional ones."""

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage error on {} {}: {}", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": {"fault": FaultKind.TRANSIENT.value, "message": str(exc)}},
        )
