"""Assignment selector: routes appeals to the most suitable available admin.

Every public operation runs as one unit of work via
:func:`run_in_transaction`, so the appeal and the workload counters it
touches are committed together or not at all. Appeals are always re-read by
id inside the transaction; the caller's copy only supplies the id.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime
from statistics import mean
from typing import Optional

from loguru import logger

from appealrouter.core.config import AssignmentConfig
from appealrouter.core.exceptions import AppealNotFoundError, DomainRuleViolation, DomainValidationError
from appealrouter.core.protocols import IClock, IUnitOfWork, UnitOfWorkFactory
from appealrouter.models.appeal import Appeal
from appealrouter.models.enums import (
    ACTIVE_WORKLOAD_STATUSES,
    AppealCategory,
    AppealPriority,
    AppealStatus,
)
from appealrouter.models.results import FaultKind, OperationResult
from appealrouter.models.stats import AdminWorkloadInfo, CategoryWorkloadInfo, WorkloadStats
from appealrouter.models.workload import AdminWorkload
from appealrouter.services.ranking import AdminCandidate, select_best_admin
from appealrouter.services.transactions import OperationBody, run_in_transaction


def _appeal_id(appeal: Appeal | int) -> int:
    return appeal.id if isinstance(appeal, Appeal) else int(appeal)


async def load_appeal(uow: IUnitOfWork, appeal_id: int) -> Appeal:
    appeal = await uow.appeals.get(appeal_id)
    if appeal is None:
        raise AppealNotFoundError(appeal_id)
    return appeal


async def get_or_create_workload(uow: IUnitOfWork, admin_id: int, now: datetime) -> AdminWorkload:
    """Workload records are created the first time an admin is touched."""
    workload = await uow.workloads.get(admin_id)
    if workload is None:
        workload = AdminWorkload.create(admin_id, now)
    return workload


class AppealAssignmentService:
    """Chooses admins for appeals and keeps their workload counters in step."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: IClock,
        config: AssignmentConfig | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock
        self._config = config or AssignmentConfig()

    async def _run(self, operation: str, body: OperationBody) -> OperationResult:
        return await run_in_transaction(
            self._uow_factory,
            body,
            operation=operation,
            max_attempts=self._config.max_conflict_retries,
        )

    # ------------------------------------------------------------------
    # Building blocks shared with the workflow service and the monitor
    # ------------------------------------------------------------------

    async def select_candidate(
        self,
        uow: IUnitOfWork,
        category: AppealCategory,
        exclude: Collection[int] = (),
    ) -> Optional[AdminCandidate]:
        workloads = await uow.workloads.list_available()
        expertise = await uow.workloads.list_expertise_for_category(category)
        return select_best_admin(workloads, expertise, category, exclude=exclude)

    async def assign_within(self, uow: IUnitOfWork, appeal: Appeal, admin_id: int, now: datetime) -> None:
        """Point ``appeal`` at ``admin_id`` and count it against their workload."""
        appeal.assign_to(admin_id, now)
        workload = await get_or_create_workload(uow, admin_id, now)
        workload.assign_appeal(now)
        await uow.appeals.save(appeal)
        await uow.workloads.save(workload)

    async def release_within(self, uow: IUnitOfWork, admin_id: int, now: datetime) -> None:
        """Take one active appeal off ``admin_id``'s workload, if they have a record."""
        workload = await uow.workloads.get(admin_id)
        if workload is None:
            return
        workload.complete_appeal(now)
        await uow.workloads.save(workload)

    # ------------------------------------------------------------------
    # Exposed operations
    # ------------------------------------------------------------------

    async def assign_appeal(self, appeal: Appeal | int) -> OperationResult:
        """Rank candidates for an unassigned appeal and assign the best one."""
        appeal_id = _appeal_id(appeal)
        log = logger.bind(appeal_id=appeal_id)

        async def body(uow: IUnitOfWork) -> OperationResult:
            now = self._clock.now()
            current = await load_appeal(uow, appeal_id)
            current.ensure_open("assign")
            if current.assigned_admin_id is not None:
                raise DomainRuleViolation(
                    f"Appeal is already assigned to admin {current.assigned_admin_id}; reassign it instead",
                    appeal_id=appeal_id,
                )
            candidate = await self.select_candidate(uow, current.category)
            if candidate is None:
                return OperationResult.no_admin(f"No admin available for {current.category.value} appeal")
            await self.assign_within(uow, current, candidate.admin_id, now)
            return OperationResult.success(candidate.admin_id, current)

        result = await self._run("assign_appeal", body)
        if result.ok:
            log.info("Assigned appeal to admin {}", result.admin_id)
        return result

    async def assign_appeal_to_admin(self, appeal: Appeal | int, admin_id: int) -> OperationResult:
        """Assign directly, bypassing ranking. Moves the workload off any previous assignee."""
        appeal_id = _appeal_id(appeal)
        log = logger.bind(appeal_id=appeal_id, admin_id=admin_id)

        async def body(uow: IUnitOfWork) -> OperationResult:
            if admin_id <= 0:
                raise DomainValidationError("Admin id must be positive")
            now = self._clock.now()
            current = await load_appeal(uow, appeal_id)
            current.ensure_open("assign")

            target = await uow.workloads.get(admin_id)
            if target is not None and not target.is_available:
                return OperationResult.failure(
                    FaultKind.ADMIN_UNAVAILABLE, f"Admin {admin_id} is not available"
                )
            if current.assigned_admin_id == admin_id:
                return OperationResult.success(admin_id, current, message="Already assigned")

            if current.assigned_admin_id is not None:
                await self.release_within(uow, current.assigned_admin_id, now)
            await self.assign_within(uow, current, admin_id, now)
            return OperationResult.success(admin_id, current)

        result = await self._run("assign_appeal_to_admin", body)
        if result.ok:
            log.info("Appeal assigned directly to admin {}", admin_id)
        return result

    async def reassign_appeal(self, appeal: Appeal | int, reason: str) -> OperationResult:
        """Release the current assignee and hand the appeal to the next best admin."""
        appeal_id = _appeal_id(appeal)
        log = logger.bind(appeal_id=appeal_id)

        async def body(uow: IUnitOfWork) -> OperationResult:
            now = self._clock.now()
            current = await load_appeal(uow, appeal_id)
            current.ensure_open("reassign")

            previous = current.assigned_admin_id
            exclude: set[int] = set()
            if previous is not None:
                await self.release_within(uow, previous, now)
                if self._config.exclude_previous_admin_on_reassign:
                    exclude.add(previous)

            candidate = await self.select_candidate(uow, current.category, exclude=exclude)
            if candidate is None:
                return OperationResult.no_admin(
                    f"No other admin available for {current.category.value} appeal"
                )
            await self.assign_within(uow, current, candidate.admin_id, now)
            return OperationResult.success(candidate.admin_id, current, message=reason)

        result = await self._run("reassign_appeal", body)
        if result.ok:
            log.info("Reassigned appeal to admin {} (reason: {})", result.admin_id, reason)
        return result

    async def find_best_admin_for_appeal(
        self, category: AppealCategory, priority: AppealPriority = AppealPriority.NORMAL
    ) -> OperationResult:
        """Ranking only, nothing is written. ``priority`` does not affect the order."""

        async def body(uow: IUnitOfWork) -> OperationResult:
            candidate = await self.select_candidate(uow, category)
            if candidate is None:
                return OperationResult.no_admin(f"No admin available for {category.value} appeal")
            return OperationResult.success(candidate.admin_id)

        logger.debug("Finding best admin for {} appeal at {} priority", category.value, priority.value)
        return await self._run("find_best_admin_for_appeal", body)

    async def get_available_admins_for_category(self, category: AppealCategory) -> list[AdminWorkload]:
        async with self._uow_factory() as uow:
            return await uow.workloads.list_with_category_expertise(category)

    async def update_admin_workload(
        self, admin_id: int, old_status: AppealStatus, new_status: AppealStatus
    ) -> OperationResult:
        """Adjust an admin's active count for an appeal status transition.

        New and InProgress count as active. Entering that set assigns,
        leaving it completes. Activity is refreshed either way.
        """
        log = logger.bind(admin_id=admin_id)

        async def body(uow: IUnitOfWork) -> OperationResult:
            if admin_id <= 0:
                raise DomainValidationError("Admin id must be positive")
            now = self._clock.now()
            workload = await get_or_create_workload(uow, admin_id, now)
            was_active = old_status in ACTIVE_WORKLOAD_STATUSES
            is_active = new_status in ACTIVE_WORKLOAD_STATUSES
            if is_active and not was_active:
                workload.assign_appeal(now)
            elif was_active and not is_active:
                workload.complete_appeal(now)
            workload.update_activity(now)
            await uow.workloads.save(workload)
            return OperationResult.success(admin_id)

        result = await self._run("update_admin_workload", body)
        if result.ok:
            log.debug("Workload updated for {} -> {}", old_status.value, new_status.value)
        return result

    async def set_admin_availability(self, admin_id: int, is_available: bool) -> OperationResult:
        log = logger.bind(admin_id=admin_id)

        async def body(uow: IUnitOfWork) -> OperationResult:
            if admin_id <= 0:
                raise DomainValidationError("Admin id must be positive")
            now = self._clock.now()
            workload = await get_or_create_workload(uow, admin_id, now)
            workload.set_availability(is_available, now)
            await uow.workloads.save(workload)
            return OperationResult.success(admin_id)

        result = await self._run("set_admin_availability", body)
        if result.ok:
            log.info("Admin availability set to {}", is_available)
        return result

    async def get_workload_stats(self) -> WorkloadStats:
        now = self._clock.now()
        async with self._uow_factory() as uow:
            workloads = await uow.workloads.list_all()
            open_appeals = await uow.appeals.list_open()
            expertise_by_category = {
                category: await uow.workloads.list_expertise_for_category(category)
                for category in AppealCategory
            }

        infos = [
            AdminWorkloadInfo(
                admin_id=w.admin_id,
                active_appeals=w.active_appeals_count,
                total_appeals=w.total_appeals_count,
                is_available=w.is_available,
                last_activity_at=w.last_activity_at,
                assignment_priority=w.calculate_assignment_priority(now),
            )
            for w in workloads
        ]
        available = [info for info in infos if info.is_available]
        available_ids = {info.admin_id for info in available}
        total_active = sum(info.active_appeals for info in infos)

        category_stats = []
        for category, records in expertise_by_category.items():
            experts = [r for r in records if r.admin_id in available_ids]
            category_stats.append(
                CategoryWorkloadInfo(
                    category=category,
                    active_appeals=sum(1 for a in open_appeals if a.category == category),
                    available_experts=len(experts),
                    average_expertise_level=(
                        mean(r.experience_level for r in experts) if experts else 0.0
                    ),
                )
            )

        return WorkloadStats(
            total_admins=len(infos),
            available_admins=len(available),
            total_active_appeals=total_active,
            average_appeals_per_admin=total_active / len(infos) if infos else 0.0,
            most_loaded_admin=max(infos, key=lambda i: i.active_appeals, default=None),
            least_loaded_admin=min(available, key=lambda i: i.active_appeals, default=None),
            category_stats=category_stats,
        )
