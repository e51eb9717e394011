"""Typed outcomes returned by the assignment and workflow services."""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from appealrouter.models.appeal import Appeal


class FaultKind(StrEnum):
    VALIDATION = "validation"
    STATE_CONFLICT = "state_conflict"
    NOT_FOUND = "not_found"
    NO_ADMIN_AVAILABLE = "no_admin_available"
    ADMIN_UNAVAILABLE = "admin_unavailable"
    TRANSIENT = "transient"


class OperationResult(BaseModel):
    """Success, or a failure carrying its fault kind and a readable message.

    ``admin_id`` is the admin chosen or affected; ``appeal`` is the committed
    state of the appeal when the operation touched one.
    """

    ok: bool
    admin_id: Optional[int] = None
    appeal: Optional[Appeal] = None
    message: str = ""
    fault: Optional[FaultKind] = None

    @classmethod
    def success(
        cls, admin_id: int | None = None, appeal: Appeal | None = None, message: str = ""
    ) -> OperationResult:
        return cls(ok=True, admin_id=admin_id, appeal=appeal, message=message)

    @classmethod
    def failure(cls, fault: FaultKind, message: str) -> OperationResult:
        return cls(ok=False, fault=fault, message=message)

    @classmethod
    def no_admin(cls, message: str = "No admin is available") -> OperationResult:
        return cls.failure(FaultKind.NO_ADMIN_AVAILABLE, message)

    @property
    def no_admin_available(self) -> bool:
        return self.fault == FaultKind.NO_ADMIN_AVAILABLE
