"""Shared test doubles: memory backend, fixed clock and entity builders."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from appealrouter.core.clock import FixedClock
from appealrouter.core.exceptions import ConcurrencyConflictError, StorageError
from appealrouter.models.appeal import Appeal
from appealrouter.models.enums import AppealCategory
from appealrouter.models.workload import AdminCategoryExpertise, AdminWorkload
from appealrouter.persistence.memory_backend import MemoryStoreBackend


class FlakyStoreBackend(MemoryStoreBackend):
    """Memory backend whose first ``conflicts`` commits fail with a version conflict."""

    def __init__(self, conflicts: int = 0, storage_failures: int = 0) -> None:
        super().__init__()
        self.conflicts = conflicts
        self.storage_failures = storage_failures
        self.apply_calls = 0

    async def apply(self, staged: dict[str, BaseModel]) -> None:
        self.apply_calls += 1
        if self.storage_failures > 0:
            self.storage_failures -= 1
            raise StorageError("backend unavailable")
        if self.conflicts > 0:
            self.conflicts -= 1
            key = next(iter(staged))
            raise ConcurrencyConflictError(key, 0, 1)
        await super().apply(staged)


def make_workload(
    admin_id: int,
    now: datetime,
    active: int = 0,
    available: bool = True,
    last_activity_at: Optional[datetime] = None,
) -> AdminWorkload:
    workload = AdminWorkload.create(admin_id, now)
    workload.active_appeals_count = active
    workload.total_appeals_count = active
    workload.is_available = available
    if last_activity_at is not None:
        workload.last_activity_at = last_activity_at
    return workload


def make_expertise(
    admin_id: int,
    category: AppealCategory,
    now: datetime,
    level: int = 1,
    successful: int = 0,
    total: int = 0,
) -> AdminCategoryExpertise:
    expertise = AdminCategoryExpertise.create(admin_id, category, now, experience_level=level)
    expertise.successful_resolutions = successful
    expertise.total_resolutions = total
    return expertise


def make_appeal(
    now: datetime,
    category: AppealCategory = AppealCategory.SCHOLARSHIP,
    requester_id: int = 500,
    body: str = "Please review my scholarship payment.",
) -> Appeal:
    return Appeal.create(requester_id, "Student", category, "Payment question", body, now)


__all__ = [
    "FixedClock",
    "FlakyStoreBackend",
    "MemoryStoreBackend",
    "make_appeal",
    "make_expertise",
    "make_workload",
]
