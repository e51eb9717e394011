"""Dict-backed store backend for unit tests and local development."""

from __future__ import annotations

import asyncio
from typing import Optional

from pydantic import BaseModel

from appealrouter.core.exceptions import ConcurrencyConflictError
from appealrouter.models.appeal import Appeal
from appealrouter.models.enums import AppealCategory
from appealrouter.models.workload import AdminCategoryExpertise, AdminWorkload
from appealrouter.persistence.keys import appeal_key, expertise_key, workload_key
from appealrouter.persistence.unit_of_work import UnitOfWork


class MemoryStoreBackend:
    """Dict-backed IStoreBackend. Commits are serialized by an asyncio lock."""

    def __init__(self) -> None:
        self._rows: dict[str, BaseModel] = {}
        self._last_appeal_id = 0
        self._lock = asyncio.Lock()

    # ---- reads (detached copies) ----

    def _copy(self, key: str) -> Optional[BaseModel]:
        row = self._rows.get(key)
        return row.model_copy(deep=True) if row is not None else None

    async def fetch_appeal(self, appeal_id: int) -> Optional[Appeal]:
        return self._copy(appeal_key(appeal_id))  # type: ignore[return-value]

    async def fetch_open_appeals(self) -> list[Appeal]:
        return [
            row.model_copy(deep=True) for row in self._rows.values()
            if isinstance(row, Appeal) and not row.is_closed
        ]

    async def next_appeal_id(self) -> int:
        self._last_appeal_id += 1
        return self._last_appeal_id

    async def fetch_workload(self, admin_id: int) -> Optional[AdminWorkload]:
        return self._copy(workload_key(admin_id))  # type: ignore[return-value]

    async def fetch_workloads(self) -> list[AdminWorkload]:
        return [row.model_copy(deep=True) for row in self._rows.values() if isinstance(row, AdminWorkload)]

    async def fetch_expertise(
        self, admin_id: int, category: AppealCategory
    ) -> Optional[AdminCategoryExpertise]:
        return self._copy(expertise_key(admin_id, category))  # type: ignore[return-value]

    async def fetch_all_expertise(self) -> list[AdminCategoryExpertise]:
        return [
            row.model_copy(deep=True) for row in self._rows.values()
            if isinstance(row, AdminCategoryExpertise)
        ]

    # ---- writes ----

    async def apply(self, staged: dict[str, BaseModel]) -> None:
        async with self._lock:
            for key, entity in staged.items():
                current = self._rows.get(key)
                actual = current.version if current is not None else 0  # type: ignore[attr-defined]
                if actual != entity.version:  # type: ignore[attr-defined]
                    raise ConcurrencyConflictError(key, entity.version, actual)  # type: ignore[attr-defined]
            for key, entity in staged.items():
                entity.version += 1  # type: ignore[attr-defined]
                self._rows[key] = entity.model_copy(deep=True)

    # ---- seeding helpers ----

    def put(self, entity: Appeal | AdminWorkload | AdminCategoryExpertise) -> None:
        """Store an entity directly, bypassing version checks."""
        if isinstance(entity, Appeal):
            if entity.id <= 0:
                self._last_appeal_id += 1
                entity.id = self._last_appeal_id
            self._last_appeal_id = max(self._last_appeal_id, entity.id)
            key = appeal_key(entity.id)
        elif isinstance(entity, AdminWorkload):
            key = workload_key(entity.admin_id)
        else:
            key = expertise_key(entity.admin_id, entity.category)
        self._rows[key] = entity.model_copy(deep=True)

    def unit_of_work(self) -> UnitOfWork:
        """UnitOfWorkFactory bound to this backend."""
        return UnitOfWork(self)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None
