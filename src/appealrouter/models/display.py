"""Display names and emoji for appeal enums, for presentation layers."""

from __future__ import annotations

from typing import NamedTuple

from appealrouter.models.enums import AppealCategory, AppealPriority, AppealStatus


class DisplayInfo(NamedTuple):
    name: str
    emoji: str


UNKNOWN = DisplayInfo("Unknown", "❓")

CATEGORY_DISPLAY: dict[AppealCategory, DisplayInfo] = {
    AppealCategory.SCHOLARSHIP: DisplayInfo("Scholarship", "💰"),
    AppealCategory.DORMITORY: DisplayInfo("Dormitory", "🏠"),
    AppealCategory.EVENTS: DisplayInfo("Events", "🎉"),
    AppealCategory.PROPOSAL: DisplayInfo("Proposal", "💡"),
    AppealCategory.COMPLAINT: DisplayInfo("Complaint", "⚠️"),
    AppealCategory.OTHER: DisplayInfo("Other", "📝"),
}

STATUS_DISPLAY: dict[AppealStatus, DisplayInfo] = {
    AppealStatus.NEW: DisplayInfo("New", "🆕"),
    AppealStatus.IN_PROGRESS: DisplayInfo("In progress", "⏳"),
    AppealStatus.WAITING_FOR_STUDENT: DisplayInfo("Waiting for student", "⌛"),
    AppealStatus.WAITING_FOR_ADMIN: DisplayInfo("Waiting for admin", "⏰"),
    AppealStatus.ESCALATED: DisplayInfo("Escalated", "🔺"),
    AppealStatus.RESOLVED: DisplayInfo("Resolved", "✅"),
    AppealStatus.CLOSED: DisplayInfo("Closed", "🔒"),
}

PRIORITY_DISPLAY: dict[AppealPriority, DisplayInfo] = {
    AppealPriority.LOW: DisplayInfo("Low", "🟢"),
    AppealPriority.NORMAL: DisplayInfo("Normal", "🟡"),
    AppealPriority.HIGH: DisplayInfo("High", "🟠"),
    AppealPriority.URGENT: DisplayInfo("Urgent", "🔴"),
}


def describe(value: AppealCategory | AppealStatus | AppealPriority) -> DisplayInfo:
    """Look up the display entry for any appeal enum value."""
    if isinstance(value, AppealCategory):
        return CATEGORY_DISPLAY.get(value, UNKNOWN)
    if isinstance(value, AppealStatus):
        return STATUS_DISPLAY.get(value, UNKNOWN)
    if isinstance(value, AppealPriority):
        return PRIORITY_DISPLAY.get(value, UNKNOWN)
    return UNKNOWN


def label(value: AppealCategory | AppealStatus | AppealPriority) -> str:
    """Emoji-prefixed display name, e.g. ``"💰 Scholarship"``."""
    info = describe(value)
    return f"{info.emoji} {info.name}"
