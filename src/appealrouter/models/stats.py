"""Aggregated workload statistics."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from appealrouter.models.enums import AppealCategory


class AdminWorkloadInfo(BaseModel):
    """Snapshot of a single admin's load."""

    admin_id: int
    active_appeals: int = 0
    total_appeals: int = 0
    is_available: bool = False
    last_activity_at: Optional[datetime] = None
    assignment_priority: int = 0


class CategoryWorkloadInfo(BaseModel):
    """Load and expert coverage for one appeal category."""

    category: AppealCategory
    active_appeals: int = 0
    available_experts: int = 0
    average_expertise_level: float = 0.0


class WorkloadStats(BaseModel):
    """Workload report across all admins."""

    total_admins: int = 0
    available_admins: int = 0
    total_active_appeals: int = 0
    average_appeals_per_admin: float = 0.0
    most_loaded_admin: Optional[AdminWorkloadInfo] = None
    least_loaded_admin: Optional[AdminWorkloadInfo] = None  # available admins only
    category_stats: list[CategoryWorkloadInfo] = Field(default_factory=list)
