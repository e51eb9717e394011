"""Entity keys shared by the unit of work and the storage backends."""

from __future__ import annotations

from appealrouter.models.enums import AppealCategory

APPEAL = "appeal"
WORKLOAD = "workload"
EXPERTISE = "expertise"


def appeal_key(appeal_id: int) -> str:
    return f"{APPEAL}:{appeal_id}"


def workload_key(admin_id: int) -> str:
    return f"{WORKLOAD}:{admin_id}"


def expertise_key(admin_id: int, category: AppealCategory) -> str:
    return f"{EXPERTISE}:{admin_id}:{category.value}"


def kind_of(key: str) -> str:
    return key.split(":", 1)[0]
