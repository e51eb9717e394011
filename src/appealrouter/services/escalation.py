"""Escalation monitor: periodic SLA sweep over open appeals.

An appeal is overdue when its last status change is older than ``sla_hours``.
Message reads and priority edits do not reset that clock.
The sweep reads candidates once, then escalates each appeal in its own
transaction after re-checking it against fresh state, so it can run next to
ad hoc assignment traffic without a global lock.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from appealrouter.core.config import EscalationConfig
from appealrouter.core.exceptions import StorageError
from appealrouter.core.protocols import IClock, IUnitOfWork, UnitOfWorkFactory
from appealrouter.models.enums import AppealStatus
from appealrouter.models.results import FaultKind, OperationResult
from appealrouter.services.assignment import AppealAssignmentService
from appealrouter.services.transactions import OperationBody, run_in_transaction


class EscalationMonitor:
    """Escalates appeals that have waited past the SLA threshold."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: IClock,
        config: EscalationConfig | None = None,
        assignment_service: Optional[AppealAssignmentService] = None,
        max_conflict_retries: int = 3,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock
        self._config = config or EscalationConfig()
        self._assignment = assignment_service
        self._max_conflict_retries = max_conflict_retries

    @property
    def sla(self) -> timedelta:
        return timedelta(hours=self._config.sla_hours)

    async def escalate_overdue_appeals(self) -> int:
        """Escalate every overdue appeal. Returns how many were escalated."""
        return len(await self.sweep())

    async def sweep(self) -> list[int]:
        """Escalate every overdue appeal and return their ids."""
        cutoff = self._clock.now() - self.sla
        async with self._uow_factory() as uow:
            candidates = await uow.appeals.list_open(stale_before=cutoff)

        escalated: list[int] = []
        for appeal in candidates:
            if appeal.status == AppealStatus.ESCALATED:
                continue
            result = await run_in_transaction(
                self._uow_factory,
                self._escalation_body(appeal.id, cutoff),
                operation="escalate_appeal",
                max_attempts=self._max_conflict_retries,
            )
            if result.ok:
                escalated.append(appeal.id)
                logger.bind(appeal_id=appeal.id).warning(
                    "Appeal escalated after exceeding {}h SLA", self._config.sla_hours
                )

        if escalated:
            logger.info("Escalation sweep escalated {} appeal(s)", len(escalated))
        return escalated

    def _escalation_body(self, appeal_id: int, cutoff: datetime) -> OperationBody:
        async def body(uow: IUnitOfWork) -> OperationResult:
            appeal = await uow.appeals.get(appeal_id)
            if (
                appeal is None
                or appeal.is_closed
                or appeal.status == AppealStatus.ESCALATED
                or appeal.last_transition_at >= cutoff
            ):
                return OperationResult.failure(FaultKind.STATE_CONFLICT, "Appeal is no longer overdue")
            appeal.escalate(self._clock.now())
            await uow.appeals.save(appeal)
            return OperationResult.success(appeal.assigned_admin_id, appeal)

        return body

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Sweep every ``sweep_interval_seconds`` until ``stop_event`` is set.

        With ``reassign_after_escalation`` on, each escalated appeal is handed
        to the assignment selector afterwards.
        """
        interval = self._config.sweep_interval_seconds
        logger.info("Escalation monitor started (interval={}s, sla={}h)", interval, self._config.sla_hours)
        while not stop_event.is_set():
            try:
                escalated = await self.sweep()
                if self._config.reassign_after_escalation and self._assignment is not None:
                    for appeal_id in escalated:
                        await self._assignment.reassign_appeal(appeal_id, reason="SLA escalation")
            except StorageError as exc:
                logger.error("Escalation sweep failed: {}", exc)
            except Exception:
                logger.exception("Escalation sweep raised; retrying next interval")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
        logger.info("Escalation monitor stopped")
