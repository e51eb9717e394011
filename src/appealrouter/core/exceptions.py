"""Appeal router exception hierarchy."""

from __future__ import annotations


class AppealRouterError(Exception):
    """Base exception for all appeal router errors."""


class DomainValidationError(AppealRouterError):
    """Input rejected before any mutation (bad id, blank text, out-of-range level)."""


class DomainRuleViolation(AppealRouterError):
    """Operation not allowed in the entity's current state."""

    def __init__(self, message: str, appeal_id: int | None = None) -> None:
        self.appeal_id = appeal_id
        super().__init__(message)


class AppealNotFoundError(AppealRouterError):
    """No appeal stored under the requested id."""

    def __init__(self, appeal_id: int) -> None:
        self.appeal_id = appeal_id
        super().__init__(f"Appeal {appeal_id} not found")


class StorageError(AppealRouterError):
    """Storage backend operation failed."""


class ConcurrencyConflictError(StorageError):
    """A staged entity changed in the store since it was read."""

    def __init__(self, key: str, expected: int, actual: int) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"Version conflict on {key}: expected {expected}, found {actual}")
