"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from loguru import logger

from appealrouter.api.errors import setup_error_handlers
from appealrouter.api.routes import admin, appeals, health
from appealrouter.core.clock import SystemClock
from appealrouter.core.config import AppSettings
from appealrouter.core.logging import configure_logging
from appealrouter.persistence import create_persistence
from appealrouter.services.appeals import AppealWorkflowService
from appealrouter.services.assignment import AppealAssignmentService
from appealrouter.services.escalation import EscalationMonitor


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    settings: AppSettings = getattr(app.state, "settings", None) or AppSettings()
    app.state.settings = settings
    configure_logging(settings.logging)

    backend = create_persistence(settings)
    clock = SystemClock()
    assignment = AppealAssignmentService(backend.unit_of_work, clock, settings.assignment)
    app.state.backend = backend
    app.state.assignment = assignment
    app.state.workflow = AppealWorkflowService(backend.unit_of_work, clock, assignment, settings.assignment)
    app.state.escalation = EscalationMonitor(
        backend.unit_of_work,
        clock,
        settings.escalation,
        assignment_service=assignment,
        max_conflict_retries=settings.assignment.max_conflict_retries,
    )

    stop_event = asyncio.Event()
    monitor_task = None
    if settings.escalation.run_in_app:
        monitor_task = asyncio.create_task(app.state.escalation.run_forever(stop_event))

    logger.info("Appeal router started ({}, {} store)", settings.environment, settings.storage_backend)
    try:
        yield
    finally:
        stop_event.set()
        if monitor_task is not None:
            await monitor_task
        await backend.close()


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Appeal Router",
        version="0.1.0",
        lifespan=lifespan,
    )
    if settings is not None:
        app.state.settings = settings
    setup_error_handlers(app)
    app.include_router(health.router)
    app.include_router(admin.router, prefix="/admin")
    app.include_router(appeals.router, prefix="/appeals")
    return app
