"""Appeal workflow: create, reply, close and expertise upkeep.

These are the caller-facing flows around the selector. Each one is a single
unit of work, so an auto-assignment on create or a workload release on close
is committed together with the appeal change.
"""

from __future__ import annotations

from datetime import datetime

from loguru import logger

from appealrouter.core.config import AssignmentConfig
from appealrouter.core.exceptions import DomainValidationError
from appealrouter.core.protocols import IClock, IUnitOfWork, UnitOfWorkFactory
from appealrouter.models.appeal import Appeal, AppealMessage
from appealrouter.models.enums import AppealCategory, AppealPriority
from appealrouter.models.results import OperationResult
from appealrouter.models.workload import AdminCategoryExpertise
from appealrouter.services.assignment import (
    AppealAssignmentService,
    get_or_create_workload,
    load_appeal,
)
from appealrouter.services.transactions import OperationBody, run_in_transaction


async def _credit_resolution(
    uow: IUnitOfWork, admin_id: int, category: AppealCategory, successful: bool, now: datetime
) -> None:
    """Record a resolution, creating the workload too so the admin is rankable."""
    if await uow.workloads.get(admin_id) is None:
        await uow.workloads.save(await get_or_create_workload(uow, admin_id, now))
    expertise = await uow.workloads.get_expertise(admin_id, category)
    if expertise is None:
        expertise = AdminCategoryExpertise.create(admin_id, category, now)
    expertise.record_resolution(successful, now)
    await uow.workloads.save_expertise(expertise)


class AppealWorkflowService:
    """Appeal lifecycle operations that sit on top of the assignment selector."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: IClock,
        assignment_service: AppealAssignmentService,
        config: AssignmentConfig | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock
        self._assignment = assignment_service
        self._config = config or AssignmentConfig()

    async def _run(self, operation: str, body: OperationBody) -> OperationResult:
        return await run_in_transaction(
            self._uow_factory,
            body,
            operation=operation,
            max_attempts=self._config.max_conflict_retries,
        )

    async def create_appeal(
        self,
        requester_id: int,
        requester_name: str,
        category: AppealCategory,
        subject: str,
        body: str,
    ) -> OperationResult:
        """Store a new appeal and, when enabled, assign it in the same transaction.

        With nobody available the appeal stays unassigned in the general
        queue; that is still a successful create.
        """

        async def work(uow: IUnitOfWork) -> OperationResult:
            now = self._clock.now()
            appeal = Appeal.create(requester_id, requester_name, category, subject, body, now)
            await uow.appeals.add(appeal)
            if not self._config.auto_assign_on_create:
                return OperationResult.success(appeal=appeal)

            candidate = await self._assignment.select_candidate(uow, category)
            if candidate is None:
                return OperationResult.success(appeal=appeal, message="Queued without an admin")
            await self._assignment.assign_within(uow, appeal, candidate.admin_id, now)
            return OperationResult.success(candidate.admin_id, appeal)

        result = await self._run("create_appeal", work)
        if result.ok and result.appeal is not None:
            logger.bind(appeal_id=result.appeal.id).info(
                "Appeal created in {} (assigned to {})", category.value, result.admin_id
            )
        return result

    async def reply_to_appeal(
        self,
        appeal_id: int,
        sender_id: int,
        sender_name: str,
        text: str,
        from_admin: bool,
    ) -> OperationResult:
        """Append a message. An admin replying to an unassigned appeal takes it."""

        async def work(uow: IUnitOfWork) -> OperationResult:
            now = self._clock.now()
            appeal = await load_appeal(uow, appeal_id)
            message = AppealMessage.create(sender_id, sender_name, from_admin, text, now)
            if not from_admin and sender_id != appeal.requester_id:
                raise DomainValidationError("Only the requester can reply on their appeal")

            if from_admin:
                if appeal.assigned_admin_id is None:
                    await self._assignment.assign_within(uow, appeal, sender_id, now)
                workload = await get_or_create_workload(uow, sender_id, now)
                workload.update_activity(now)
                await uow.workloads.save(workload)

            appeal.add_message(message, now)
            await uow.appeals.save(appeal)
            return OperationResult.success(appeal.assigned_admin_id, appeal)

        return await self._run("reply_to_appeal", work)

    async def mark_messages_read(self, appeal_id: int, reader_is_admin: bool) -> OperationResult:
        async def work(uow: IUnitOfWork) -> OperationResult:
            appeal = await load_appeal(uow, appeal_id)
            changed = appeal.mark_messages_read(reader_is_admin, self._clock.now())
            if changed:
                await uow.appeals.save(appeal)
            return OperationResult.success(appeal.assigned_admin_id, appeal, message=f"{changed} read")

        return await self._run("mark_messages_read", work)

    async def close_appeal(
        self, appeal_id: int, closed_by: int, reason: str, successful: bool = True
    ) -> OperationResult:
        """Close the appeal, release its assignee and credit the resolution.

        The resolution goes to the assignee's expertise for the appeal's
        category, or to the closing admin when nobody was assigned.
        """

        async def work(uow: IUnitOfWork) -> OperationResult:
            now = self._clock.now()
            appeal = await load_appeal(uow, appeal_id)
            assignee = appeal.assigned_admin_id
            appeal.close(closed_by, reason, now)
            await uow.appeals.save(appeal)

            if assignee is not None:
                await self._assignment.release_within(uow, assignee, now)

            resolver = assignee if assignee is not None else closed_by
            await _credit_resolution(uow, resolver, appeal.category, successful, now)
            return OperationResult.success(resolver, appeal)

        result = await self._run("close_appeal", work)
        if result.ok:
            logger.bind(appeal_id=appeal_id, admin_id=closed_by).info("Appeal closed: {}", reason)
        return result

    async def update_priority(self, appeal_id: int, priority: AppealPriority) -> OperationResult:
        async def work(uow: IUnitOfWork) -> OperationResult:
            appeal = await load_appeal(uow, appeal_id)
            appeal.ensure_open("change the priority of")
            appeal.update_priority(priority, self._clock.now())
            await uow.appeals.save(appeal)
            return OperationResult.success(appeal.assigned_admin_id, appeal)

        return await self._run("update_priority", work)

    async def set_admin_expertise(
        self, admin_id: int, category: AppealCategory, level: int
    ) -> OperationResult:
        """Create or override an admin's level in ``category``."""

        async def work(uow: IUnitOfWork) -> OperationResult:
            now = self._clock.now()
            expertise = await uow.workloads.get_expertise(admin_id, category)
            if expertise is None:
                expertise = AdminCategoryExpertise.create(admin_id, category, now, experience_level=level)
            else:
                expertise.set_experience_level(level, now)
            if await uow.workloads.get(admin_id) is None:
                await uow.workloads.save(await get_or_create_workload(uow, admin_id, now))
            await uow.workloads.save_expertise(expertise)
            return OperationResult.success(admin_id)

        result = await self._run("set_admin_expertise", work)
        if result.ok:
            logger.bind(admin_id=admin_id).info("Expertise in {} set to level {}", category.value, level)
        return result

    async def record_resolution(
        self, admin_id: int, category: AppealCategory, successful: bool
    ) -> OperationResult:
        async def work(uow: IUnitOfWork) -> OperationResult:
            await _credit_resolution(uow, admin_id, category, successful, self._clock.now())
            return OperationResult.success(admin_id)

        return await self._run("record_resolution", work)

    async def list_admin_expertise(self, admin_id: int) -> list[AdminCategoryExpertise]:
        async with self._uow_factory() as uow:
            return await uow.workloads.list_expertise(admin_id)

    async def get_appeal(self, appeal_id: int) -> OperationResult:
        async def work(uow: IUnitOfWork) -> OperationResult:
            appeal = await load_appeal(uow, appeal_id)
            return OperationResult.success(appeal.assigned_admin_id, appeal)

        return await self._run("get_appeal", work)
