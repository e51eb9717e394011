"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from appealrouter.core.exceptions import StorageError

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(request: Request) -> dict[str, str]:
    try:
        await request.app.state.backend.ping()
    except StorageError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"status": "ready", "storage": request.app.state.settings.storage_backend}
