"""Appeal enumerations. Plain tagged values; display data lives in ``display``."""

from __future__ import annotations

from enum import StrEnum


class AppealCategory(StrEnum):
    SCHOLARSHIP = "Scholarship"
    DORMITORY = "Dormitory"
    EVENTS = "Events"
    PROPOSAL = "Proposal"
    COMPLAINT = "Complaint"
    OTHER = "Other"


class AppealStatus(StrEnum):
    NEW = "New"
    IN_PROGRESS = "InProgress"
    WAITING_FOR_STUDENT = "WaitingForStudent"
    WAITING_FOR_ADMIN = "WaitingForAdmin"
    ESCALATED = "Escalated"
    RESOLVED = "Resolved"  # no operation transitions here
    CLOSED = "Closed"


class AppealPriority(StrEnum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    URGENT = "Urgent"


# Statuses counted against an admin's active workload.
ACTIVE_WORKLOAD_STATUSES = frozenset({AppealStatus.NEW, AppealStatus.IN_PROGRESS})
