"""Unit of work and repositories over an IStoreBackend.

Reads go to the backend, overlaid with whatever this unit of work has already
staged, so a transaction always sees its own pending writes. Nothing reaches
the backend before :meth:`UnitOfWork.commit`.
"""

from __future__ import annotations

from datetime import datetime
from types import TracebackType
from typing import Optional

from pydantic import BaseModel

from appealrouter.core.exceptions import StorageError
from appealrouter.core.protocols import IStoreBackend
from appealrouter.models.appeal import Appeal
from appealrouter.models.enums import AppealCategory
from appealrouter.models.workload import AdminCategoryExpertise, AdminWorkload
from appealrouter.persistence.keys import (
    APPEAL,
    EXPERTISE,
    WORKLOAD,
    appeal_key,
    expertise_key,
    kind_of,
    workload_key,
)


class UnitOfWork:
    """IUnitOfWork implementation shared by every storage backend."""

    def __init__(self, backend: IStoreBackend) -> None:
        self.backend = backend
        self._staged: dict[str, BaseModel] = {}
        self.appeals = AppealRepository(self)
        self.workloads = AdminWorkloadRepository(self)

    async def __aenter__(self) -> UnitOfWork:
        self._staged.clear()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._staged:
            await self.rollback()

    async def commit(self) -> None:
        if not self._staged:
            return
        staged = dict(self._staged)
        await self.backend.apply(staged)  # type: ignore[arg-type]
        self._staged.clear()

    async def rollback(self) -> None:
        self._staged.clear()

    # ---- staging ----

    def stage(self, key: str, entity: BaseModel) -> None:
        self._staged[key] = entity

    def staged(self, key: str) -> Optional[BaseModel]:
        return self._staged.get(key)

    def staged_of_kind(self, kind: str) -> list[BaseModel]:
        return [entity for key, entity in self._staged.items() if kind_of(key) == kind]

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._staged)


class AppealRepository:
    """IAppealRepository bound to one unit of work."""

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    async def get(self, appeal_id: int) -> Optional[Appeal]:
        staged = self._uow.staged(appeal_key(appeal_id))
        if staged is not None:
            return staged  # type: ignore[return-value]
        return await self._uow.backend.fetch_appeal(appeal_id)

    async def add(self, appeal: Appeal) -> Appeal:
        if appeal.id <= 0:
            appeal.id = await self._uow.backend.next_appeal_id()
        self._uow.stage(appeal_key(appeal.id), appeal)
        return appeal

    async def save(self, appeal: Appeal) -> None:
        if appeal.id <= 0:
            raise StorageError("Appeal has no id; add it before saving")
        self._uow.stage(appeal_key(appeal.id), appeal)

    async def list_open(self, stale_before: datetime | None = None) -> list[Appeal]:
        """Non-closed appeals, longest since their last status change first."""
        by_id = {a.id: a for a in await self._uow.backend.fetch_open_appeals()}
        for entity in self._uow.staged_of_kind(APPEAL):
            by_id[entity.id] = entity  # type: ignore[attr-defined]
        appeals = [
            a for a in by_id.values()
            if not a.is_closed and (stale_before is None or a.last_transition_at < stale_before)
        ]
        return sorted(appeals, key=lambda a: (a.last_transition_at, a.id))


class AdminWorkloadRepository:
    """IAdminWorkloadRepository bound to one unit of work."""

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    async def get(self, admin_id: int) -> Optional[AdminWorkload]:
        staged = self._uow.staged(workload_key(admin_id))
        if staged is not None:
            return staged  # type: ignore[return-value]
        return await self._uow.backend.fetch_workload(admin_id)

    async def save(self, workload: AdminWorkload) -> None:
        self._uow.stage(workload_key(workload.admin_id), workload)

    async def list_all(self) -> list[AdminWorkload]:
        by_admin = {w.admin_id: w for w in await self._uow.backend.fetch_workloads()}
        for entity in self._uow.staged_of_kind(WORKLOAD):
            by_admin[entity.admin_id] = entity  # type: ignore[attr-defined]
        return sorted(by_admin.values(), key=lambda w: w.admin_id)

    async def list_available(self) -> list[AdminWorkload]:
        """Available admins, least active first, most recently active next."""
        available = [w for w in await self.list_all() if w.is_available]
        return sorted(
            available,
            key=lambda w: (w.active_appeals_count, -w.last_activity_at.timestamp()),
        )

    async def list_with_category_expertise(self, category: AppealCategory) -> list[AdminWorkload]:
        """Available admins holding an expertise record for ``category``."""
        levels = {e.admin_id: e.experience_level for e in await self.list_expertise_for_category(category)}
        workloads = [w for w in await self.list_all() if w.is_available and w.admin_id in levels]
        return sorted(workloads, key=lambda w: (w.active_appeals_count, -levels[w.admin_id]))

    async def get_expertise(
        self, admin_id: int, category: AppealCategory
    ) -> Optional[AdminCategoryExpertise]:
        staged = self._uow.staged(expertise_key(admin_id, category))
        if staged is not None:
            return staged  # type: ignore[return-value]
        return await self._uow.backend.fetch_expertise(admin_id, category)

    async def list_expertise(self, admin_id: int) -> list[AdminCategoryExpertise]:
        return [e for e in await self._all_expertise() if e.admin_id == admin_id]

    async def list_expertise_for_category(self, category: AppealCategory) -> list[AdminCategoryExpertise]:
        return [e for e in await self._all_expertise() if e.category == category]

    async def save_expertise(self, expertise: AdminCategoryExpertise) -> None:
        self._uow.stage(expertise_key(expertise.admin_id, expertise.category), expertise)

    async def _all_expertise(self) -> list[AdminCategoryExpertise]:
        by_key = {
            expertise_key(e.admin_id, e.category): e
            for e in await self._uow.backend.fetch_all_expertise()
        }
        for entity in self._uow.staged_of_kind(EXPERTISE):
            by_key[expertise_key(entity.admin_id, entity.category)] = entity  # type: ignore[attr-defined]
        return sorted(by_key.values(), key=lambda e: (e.admin_id, e.category.value))
