"""Appeal endpoints: create, read, assign, reply and close."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from appealrouter.api.deps import get_assignment, get_workflow, unwrap
from appealrouter.models.enums import AppealCategory, AppealPriority
from appealrouter.models.results import OperationResult
from appealrouter.services.appeals import AppealWorkflowService
from appealrouter.services.assignment import AppealAssignmentService

router = APIRouter(tags=["appeals"])


class CreateAppealRequest(BaseModel):
    requester_id: int
    requester_name: str = ""
    category: AppealCategory
    subject: str
    body: str


class ReplyRequest(BaseModel):
    sender_id: int
    sender_name: str = ""
    text: str
    from_admin: bool = False


class CloseRequest(BaseModel):
    closed_by: int
    reason: str
    successful: bool = True


class ReassignRequest(BaseModel):
    reason: str


class PriorityRequest(BaseModel):
    priority: AppealPriority


@router.post("", status_code=201)
async def create_appeal(
    body: CreateAppealRequest,
    workflow: AppealWorkflowService = Depends(get_workflow),
) -> OperationResult:
    return unwrap(
        await workflow.create_appeal(
            body.requester_id, body.requester_name, body.category, body.subject, body.body
        )
    )


@router.get("/{appeal_id}")
async def get_appeal(
    appeal_id: int,
    workflow: AppealWorkflowService = Depends(get_workflow),
) -> OperationResult:
    return unwrap(await workflow.get_appeal(appeal_id))


@router.post("/{appeal_id}/assign")
async def assign(
    appeal_id: int,
    assignment: AppealAssignmentService = Depends(get_assignment),
) -> OperationResult:
    return unwrap(await assignment.assign_appeal(appeal_id))


@router.post("/{appeal_id}/assign/{admin_id}")
async def assign_to_admin(
    appeal_id: int,
    admin_id: int,
    assignment: AppealAssignmentService = Depends(get_assignment),
) -> OperationResult:
    return unwrap(await assignment.assign_appeal_to_admin(appeal_id, admin_id))


@router.post("/{appeal_id}/reassign")
async def reassign(
    appeal_id: int,
    body: ReassignRequest,
    assignment: AppealAssignmentService = Depends(get_assignment),
) -> OperationResult:
    return unwrap(await assignment.reassign_appeal(appeal_id, body.reason))


@router.post("/{appeal_id}/messages")
async def reply(
    appeal_id: int,
    body: ReplyRequest,
    workflow: AppealWorkflowService = Depends(get_workflow),
) -> OperationResult:
    return unwrap(
        await workflow.reply_to_appeal(
            appeal_id, body.sender_id, body.sender_name, body.text, body.from_admin
        )
    )


@router.post("/{appeal_id}/close")
async def close(
    appeal_id: int,
    body: CloseRequest,
    workflow: AppealWorkflowService = Depends(get_workflow),
) -> OperationResult:
    return unwrap(await workflow.close_appeal(appeal_id, body.closed_by, body.reason, body.successful))


@router.put("/{appeal_id}/priority")
async def update_priority(
    appeal_id: int,
    body: PriorityRequest,
    workflow: AppealWorkflowService = Depends(get_workflow),
) -> OperationResult:
    return unwrap(await workflow.update_priority(appeal_id, body.priority))
