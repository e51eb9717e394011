"""Protocol interfaces for the appeal router's collaborators.

The services depend only on these Protocols: structural typing, no
inheritance required, easy to fake in tests.
"""

from __future__ import annotations

from datetime import datetime
from types import TracebackType
from typing import TYPE_CHECKING, Callable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from appealrouter.models.appeal import Appeal
    from appealrouter.models.enums import AppealCategory
    from appealrouter.models.workload import AdminCategoryExpertise, AdminWorkload


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@runtime_checkable
class IClock(Protocol):
    """Source of the current (timezone-aware UTC) time."""

    def now(self) -> datetime: ...


# ---------------------------------------------------------------------------
# Persistence: Appeals
# ---------------------------------------------------------------------------

@runtime_checkable
class IAppealRepository(Protocol):
    """Appeal storage within a unit of work. Reads return detached copies."""

    async def get(self, appeal_id: int) -> Optional[Appeal]: ...

    async def add(self, appeal: Appeal) -> Appeal: ...

    async def save(self, appeal: Appeal) -> None: ...

    async def list_open(self, stale_before: datetime | None = None) -> list[Appeal]: ...


# ---------------------------------------------------------------------------
# Persistence: Admin workloads and expertise
# ---------------------------------------------------------------------------

@runtime_checkable
class IAdminWorkloadRepository(Protocol):
    """Admin workload and expertise storage within a unit of work."""

    async def get(self, admin_id: int) -> Optional[AdminWorkload]: ...

    async def save(self, workload: AdminWorkload) -> None: ...

    async def list_all(self) -> list[AdminWorkload]: ...

    async def list_available(self) -> list[AdminWorkload]: ...

    async def list_with_category_expertise(self, category: AppealCategory) -> list[AdminWorkload]: ...

    async def get_expertise(
        self, admin_id: int, category: AppealCategory
    ) -> Optional[AdminCategoryExpertise]: ...

    async def list_expertise(self, admin_id: int) -> list[AdminCategoryExpertise]: ...

    async def list_expertise_for_category(
        self, category: AppealCategory
    ) -> list[AdminCategoryExpertise]: ...

    async def save_expertise(self, expertise: AdminCategoryExpertise) -> None: ...


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------

@runtime_checkable
class IUnitOfWork(Protocol):
    """One atomic read-modify-write transaction.

    Writes are staged until :meth:`commit`. Leaving the context without a
    commit discards them.
    """

    appeals: IAppealRepository
    workloads: IAdminWorkloadRepository

    async def __aenter__(self) -> IUnitOfWork: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


UnitOfWorkFactory = Callable[[], IUnitOfWork]


# ---------------------------------------------------------------------------
# Storage backend (beneath the unit of work)
# ---------------------------------------------------------------------------

@runtime_checkable
class IStoreBackend(Protocol):
    """Raw entity storage with an atomic, version-checked batch write."""

    async def fetch_appeal(self, appeal_id: int) -> Optional[Appeal]: ...

    async def fetch_open_appeals(self) -> list[Appeal]: ...

    async def next_appeal_id(self) -> int: ...

    async def fetch_workload(self, admin_id: int) -> Optional[AdminWorkload]: ...

    async def fetch_workloads(self) -> list[AdminWorkload]: ...

    async def fetch_expertise(
        self, admin_id: int, category: AppealCategory
    ) -> Optional[AdminCategoryExpertise]: ...

    async def fetch_all_expertise(self) -> list[AdminCategoryExpertise]: ...

    async def apply(self, staged: dict[str, Appeal | AdminWorkload | AdminCategoryExpertise]) -> None:
        """Write every staged entity or none.

        Raises ConcurrencyConflictError when a stored version differs from the
        staged entity's version.
        """
        ...
