"""Admin workload counters and per-category expertise."""

from __future__ import annotations

import math
import sys
from datetime import datetime
from typing import ClassVar, Optional

from pydantic import BaseModel, Field, model_validator

from appealrouter.core.exceptions import DomainValidationError
from appealrouter.models.enums import AppealCategory

MIN_EXPERIENCE_LEVEL = 1
MAX_EXPERIENCE_LEVEL = 5


class AdminWorkload(BaseModel):
    """Assignment counters and availability for one admin."""

    # Lower assignment priority is more eligible.
    EXCLUDED_PRIORITY: ClassVar[int] = sys.maxsize
    ACTIVE_APPEAL_WEIGHT: ClassVar[int] = 100
    RECENT_ACTIVITY_HOURS: ClassVar[float] = 24
    RECENT_ACTIVITY_BONUS: ClassVar[int] = 50
    STALE_ACTIVITY_HOURS: ClassVar[float] = 72
    STALE_ACTIVITY_PENALTY: ClassVar[int] = 200

    admin_id: int
    active_appeals_count: int = Field(default=0, ge=0)
    total_appeals_count: int = Field(default=0, ge=0)
    is_available: bool = True
    last_assigned_at: Optional[datetime] = None
    last_activity_at: datetime
    created_at: datetime
    updated_at: datetime
    version: int = 0

    @model_validator(mode="after")
    def _check_counts(self) -> AdminWorkload:
        if self.active_appeals_count > self.total_appeals_count:
            raise ValueError("active_appeals_count cannot exceed total_appeals_count")
        return self

    @classmethod
    def create(cls, admin_id: int, now: datetime) -> AdminWorkload:
        if admin_id <= 0:
            raise DomainValidationError("Admin id must be positive")
        return cls(
            admin_id=admin_id,
            last_activity_at=now,
            created_at=now,
            updated_at=now,
        )

    def assign_appeal(self, now: datetime) -> None:
        self.active_appeals_count += 1
        self.total_appeals_count += 1
        self.last_assigned_at = now
        self.updated_at = now

    def complete_appeal(self, now: datetime) -> None:
        self.active_appeals_count = max(self.active_appeals_count - 1, 0)
        self.updated_at = now

    def set_availability(self, is_available: bool, now: datetime) -> None:
        self.is_available = is_available
        self.last_activity_at = now
        self.updated_at = now

    def update_activity(self, now: datetime) -> None:
        self.last_activity_at = now
        self.updated_at = now

    def hours_since_activity(self, now: datetime) -> float:
        return (now - self.last_activity_at).total_seconds() / 3600

    def calculate_assignment_priority(self, now: datetime) -> int:
        if not self.is_available:
            return self.EXCLUDED_PRIORITY

        priority = self.active_appeals_count * self.ACTIVE_APPEAL_WEIGHT
        idle_hours = self.hours_since_activity(now)
        if idle_hours < self.RECENT_ACTIVITY_HOURS:
            priority -= self.RECENT_ACTIVITY_BONUS
        if idle_hours > self.STALE_ACTIVITY_HOURS:
            priority += self.STALE_ACTIVITY_PENALTY
        return max(priority, 0)


class AdminCategoryExpertise(BaseModel):
    """Skill record of one admin in one appeal category."""

    # (minimum success rate, minimum resolutions, level reached)
    LEVEL_TIERS: ClassVar[tuple[tuple[float, int, int], ...]] = (
        (0.9, 20, 5),
        (0.8, 15, 4),
        (0.7, 10, 3),
        (0.6, 5, 2),
    )

    admin_id: int
    category: AppealCategory
    experience_level: int = Field(default=MIN_EXPERIENCE_LEVEL, ge=MIN_EXPERIENCE_LEVEL, le=MAX_EXPERIENCE_LEVEL)
    successful_resolutions: int = Field(default=0, ge=0)
    total_resolutions: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime
    version: int = 0

    @model_validator(mode="after")
    def _check_counts(self) -> AdminCategoryExpertise:
        if self.successful_resolutions > self.total_resolutions:
            raise ValueError("successful_resolutions cannot exceed total_resolutions")
        return self

    @staticmethod
    def _validate_level(level: int) -> None:
        if not MIN_EXPERIENCE_LEVEL <= level <= MAX_EXPERIENCE_LEVEL:
            raise DomainValidationError(
                f"Experience level must be between {MIN_EXPERIENCE_LEVEL} and {MAX_EXPERIENCE_LEVEL}"
            )

    @classmethod
    def create(
        cls,
        admin_id: int,
        category: AppealCategory,
        now: datetime,
        experience_level: int = MIN_EXPERIENCE_LEVEL,
    ) -> AdminCategoryExpertise:
        if admin_id <= 0:
            raise DomainValidationError("Admin id must be positive")
        cls._validate_level(experience_level)
        return cls(
            admin_id=admin_id,
            category=category,
            experience_level=experience_level,
            created_at=now,
            updated_at=now,
        )

    def set_experience_level(self, level: int, now: datetime) -> None:
        """Explicit override; may lower the level."""
        self._validate_level(level)
        self.experience_level = level
        self.updated_at = now

    def record_resolution(self, successful: bool, now: datetime) -> None:
        self.total_resolutions += 1
        if successful:
            self.successful_resolutions += 1
        self.experience_level = max(self.experience_level, self._earned_level())
        self.updated_at = now

    def _earned_level(self) -> int:
        rate = self.success_rate
        for min_rate, min_total, level in self.LEVEL_TIERS:
            if rate >= min_rate and self.total_resolutions >= min_total:
                return level
        return MIN_EXPERIENCE_LEVEL

    @property
    def success_rate(self) -> float:
        if self.total_resolutions == 0:
            return 0.0
        return self.successful_resolutions / self.total_resolutions

    def calculate_expertise_score(self) -> int:
        """level*20 + success bonus (up to 30) + experience bonus (up to 20)."""
        success_bonus = math.floor(self.success_rate * 30 + 0.5)
        experience_bonus = min(self.total_resolutions, 10) * 2
        return self.experience_level * 20 + success_bonus + experience_bonus
