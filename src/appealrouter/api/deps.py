"""Request dependencies and result-to-HTTP mapping."""

from __future__ import annotations

from fastapi import HTTPException, Request

from appealrouter.models.results import FaultKind, OperationResult
from appealrouter.services.appeals import AppealWorkflowService
from appealrouter.services.assignment import AppealAssignmentService
from appealrouter.services.escalation import EscalationMonitor

FAULT_STATUS_CODES: dict[FaultKind, int] = {
    FaultKind.VALIDATION: 422,
    FaultKind.STATE_CONFLICT: 409,
    FaultKind.NOT_FOUND: 404,
    FaultKind.NO_ADMIN_AVAILABLE: 409,
    FaultKind.ADMIN_UNAVAILABLE: 409,
    FaultKind.TRANSIENT: 503,
}


def get_assignment(request: Request) -> AppealAssignmentService:
    return request.app.state.assignment


def get_workflow(request: Request) -> AppealWorkflowService:
    return request.app.state.workflow


def get_escalation(request: Request) -> EscalationMonitor:
    return request.app.state.escalation


def unwrap(result: OperationResult) -> OperationResult:
    """Return a successful result, or raise the HTTP error for its fault."""
    if result.ok:
        return result
    status_code = FAULT_STATUS_CODES.get(result.fault, 500) if result.fault else 500
    raise HTTPException(
        status_code=status_code,
        detail={"fault": result.fault, "message": result.message},
    )
