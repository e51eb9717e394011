"""Admin console endpoints: workload, availability, expertise and escalation."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from appealrouter.api.deps import get_assignment, get_escalation, get_workflow, unwrap
from appealrouter.models.enums import AppealCategory, AppealPriority
from appealrouter.models.results import OperationResult
from appealrouter.models.stats import WorkloadStats
from appealrouter.models.workload import AdminCategoryExpertise, AdminWorkload
from appealrouter.services.appeals import AppealWorkflowService
from appealrouter.services.assignment import AppealAssignmentService
from appealrouter.services.escalation import EscalationMonitor

router = APIRouter(tags=["admin"])


class AvailabilityRequest(BaseModel):
    is_available: bool


class ExpertiseRequest(BaseModel):
    level: int


@router.get("/workload/stats")
async def workload_stats(
    assignment: AppealAssignmentService = Depends(get_assignment),
) -> WorkloadStats:
    return await assignment.get_workload_stats()


@router.put("/admins/{admin_id}/availability")
async def set_availability(
    admin_id: int,
    body: AvailabilityRequest,
    assignment: AppealAssignmentService = Depends(get_assignment),
) -> OperationResult:
    return unwrap(await assignment.set_admin_availability(admin_id, body.is_available))


@router.get("/admins/{admin_id}/expertise")
async def list_expertise(
    admin_id: int,
    workflow: AppealWorkflowService = Depends(get_workflow),
) -> list[AdminCategoryExpertise]:
    return await workflow.list_admin_expertise(admin_id)


@router.put("/admins/{admin_id}/expertise/{category}")
async def set_expertise(
    admin_id: int,
    category: AppealCategory,
    body: ExpertiseRequest,
    workflow: AppealWorkflowService = Depends(get_workflow),
) -> OperationResult:
    return unwrap(await workflow.set_admin_expertise(admin_id, category, body.level))


@router.get("/categories/{category}/admins")
async def category_admins(
    category: AppealCategory,
    assignment: AppealAssignmentService = Depends(get_assignment),
) -> list[AdminWorkload]:
    return await assignment.get_available_admins_for_category(category)


@router.get("/categories/{category}/best-admin")
async def best_admin(
    category: AppealCategory,
    priority: AppealPriority = AppealPriority.NORMAL,
    assignment: AppealAssignmentService = Depends(get_assignment),
) -> OperationResult:
    return unwrap(await assignment.find_best_admin_for_appeal(category, priority))


@router.post("/escalations/sweep")
async def run_escalation_sweep(
    monitor: EscalationMonitor = Depends(get_escalation),
) -> dict[str, int]:
    return {"escalated": await monitor.escalate_overdue_appeals()}
