"""Appeal aggregate and its lifecycle.

An appeal is built through :meth:`Appeal.create`, which validates input and
starts the appeal in ``New`` with ``Normal`` priority. Every later change goes
through a mutator that checks the current state first and stamps
``updated_at``. Status changes also stamp ``status_changed_at``, which is the
reference for the SLA age. ``Closed`` is terminal.

Mutators take ``now`` from the caller's clock so that SLA and scoring
decisions stay deterministic.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from appealrouter.core.exceptions import DomainRuleViolation, DomainValidationError
from appealrouter.models.enums import AppealCategory, AppealPriority, AppealStatus

BODY_MIN_LENGTH = 10
BODY_MAX_LENGTH = 4000
MESSAGE_MAX_LENGTH = 4000


class AppealMessage(BaseModel):
    """A single message in an appeal conversation."""

    sender_id: int
    sender_name: str = ""
    is_from_admin: bool = False
    text: str
    sent_at: datetime
    is_read: bool = False
    read_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        sender_id: int,
        sender_name: str,
        is_from_admin: bool,
        text: str,
        now: datetime,
    ) -> AppealMessage:
        if sender_id <= 0:
            raise DomainValidationError("Sender id must be positive")
        if text is None or not text.strip():
            raise DomainValidationError("Message text must not be blank")
        if len(text) > MESSAGE_MAX_LENGTH:
            raise DomainValidationError(
                f"Message text is too long (maximum {MESSAGE_MAX_LENGTH} characters)"
            )
        return cls(
            sender_id=sender_id,
            sender_name=sender_name,
            is_from_admin=is_from_admin,
            text=text,
            sent_at=now,
        )

    def mark_read(self, now: datetime) -> None:
        if not self.is_read:
            self.is_read = True
            self.read_at = now


class Appeal(BaseModel):
    """A tracked support request."""

    id: int = 0  # allocated by the appeal repository
    requester_id: int
    requester_name: str = ""
    category: AppealCategory
    subject: str
    body: str
    status: AppealStatus = AppealStatus.NEW
    priority: AppealPriority = AppealPriority.NORMAL
    assigned_admin_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    status_changed_at: Optional[datetime] = None  # None on documents written before the field existed
    first_response_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    closed_by: Optional[int] = None
    closed_reason: Optional[str] = None
    messages: list[AppealMessage] = Field(default_factory=list)
    version: int = 0  # optimistic concurrency token, managed by the store

    @model_validator(mode="after")
    def _check_invariants(self) -> Appeal:
        if self.status == AppealStatus.CLOSED and self.assigned_admin_id is not None:
            raise ValueError("A closed appeal cannot have an assigned admin")
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot precede created_at")
        return self

    # ---- construction ----

    @classmethod
    def create(
        cls,
        requester_id: int,
        requester_name: str,
        category: AppealCategory,
        subject: str,
        body: str,
        now: datetime,
    ) -> Appeal:
        if requester_id <= 0:
            raise DomainValidationError("Requester id must be positive")
        if subject is None or not subject.strip():
            raise DomainValidationError("Appeal subject must not be blank")
        if body is None or not body.strip():
            raise DomainValidationError("Appeal text must not be blank")
        if len(body) < BODY_MIN_LENGTH:
            raise DomainValidationError(
                f"Appeal text is too short (minimum {BODY_MIN_LENGTH} characters)"
            )
        if len(body) > BODY_MAX_LENGTH:
            raise DomainValidationError(
                f"Appeal text is too long (maximum {BODY_MAX_LENGTH} characters)"
            )
        return cls(
            requester_id=requester_id,
            requester_name=requester_name,
            category=category,
            subject=subject,
            body=body,
            created_at=now,
            updated_at=now,
            status_changed_at=now,
        )

    # ---- helpers ----

    @property
    def is_closed(self) -> bool:
        return self.status == AppealStatus.CLOSED

    def ensure_open(self, action: str) -> None:
        if self.is_closed:
            raise DomainRuleViolation(f"Cannot {action} a closed appeal", appeal_id=self.id)

    @property
    def last_transition_at(self) -> datetime:
        """When the status last changed, or creation time for an untouched appeal."""
        return self.status_changed_at or self.created_at

    def _touch(self, now: datetime) -> None:
        if now > self.updated_at:
            self.updated_at = now

    def _set_status(self, status: AppealStatus, now: datetime) -> None:
        if status != self.status:
            self.status = status
            if self.status_changed_at is None or now > self.status_changed_at:
                self.status_changed_at = now

    # ---- mutators ----

    def assign_to(self, admin_id: Optional[int], now: datetime) -> None:
        """Set or clear the assignee. Assigning a New appeal moves it to InProgress."""
        self.ensure_open("assign")
        if admin_id is not None and admin_id <= 0:
            raise DomainValidationError("Admin id must be positive")
        self.assigned_admin_id = admin_id
        if admin_id is not None and self.status == AppealStatus.NEW:
            self._set_status(AppealStatus.IN_PROGRESS, now)
        self._touch(now)

    def update_priority(self, priority: AppealPriority, now: datetime) -> None:
        self.priority = priority
        self._touch(now)

    def set_first_response(self, now: datetime) -> None:
        if self.first_response_at is None:
            self.first_response_at = now
        self._touch(now)

    def mark_in_progress(self, now: datetime) -> None:
        self.ensure_open("change the status of")
        self._set_status(AppealStatus.IN_PROGRESS, now)
        self._touch(now)

    def mark_waiting_for_student(self, now: datetime) -> None:
        self.ensure_open("change the status of")
        self._set_status(AppealStatus.WAITING_FOR_STUDENT, now)
        self.set_first_response(now)

    def mark_waiting_for_admin(self, now: datetime) -> None:
        self.ensure_open("change the status of")
        self._set_status(AppealStatus.WAITING_FOR_ADMIN, now)
        self._touch(now)

    def escalate(self, now: datetime) -> None:
        """Force Escalated status. Priority is set to High, even from Urgent."""
        self.ensure_open("escalate")
        self._set_status(AppealStatus.ESCALATED, now)
        self.priority = AppealPriority.HIGH
        self._touch(now)

    def close(self, closed_by: int, reason: str, now: datetime) -> None:
        if self.is_closed:
            raise DomainRuleViolation("Appeal is already closed", appeal_id=self.id)
        if reason is None or not reason.strip():
            raise DomainValidationError("A closing reason is required")
        if closed_by <= 0:
            raise DomainValidationError("Closing admin id must be positive")
        self._set_status(AppealStatus.CLOSED, now)
        self.assigned_admin_id = None
        self.closed_by = closed_by
        self.closed_reason = reason
        self.closed_at = now
        self._touch(now)

    def add_message(self, message: AppealMessage, now: datetime) -> None:
        """Append a message; the sender side decides who the appeal waits for next."""
        self.ensure_open("add a message to")
        self.messages.append(message)
        if message.is_from_admin:
            self._set_status(AppealStatus.WAITING_FOR_STUDENT, now)
            self.set_first_response(now)
        else:
            self._set_status(AppealStatus.WAITING_FOR_ADMIN, now)
        self._touch(now)

    def mark_messages_read(self, reader_is_admin: bool, now: datetime) -> int:
        """Mark the other party's unread messages as read. Returns how many changed."""
        self.ensure_open("mark messages on")
        changed = 0
        for message in self.messages:
            if message.is_from_admin != reader_is_admin and not message.is_read:
                message.mark_read(now)
                changed += 1
        if changed:
            self._touch(now)
        return changed
