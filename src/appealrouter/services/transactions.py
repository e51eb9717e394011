"""Run one logical operation as a single unit of work.

The operation body receives a fresh unit of work, reads what it needs,
mutates entities and returns an :class:`OperationResult`. Staged writes are
committed only for a successful result. On an optimistic-concurrency
conflict the whole body is run again from a fresh read; nothing from the
failed attempt was committed, so the retry cannot double-apply a mutation.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from loguru import logger

from appealrouter.core.exceptions import (
    AppealNotFoundError,
    ConcurrencyConflictError,
    DomainRuleViolation,
    DomainValidationError,
    StorageError,
)
from appealrouter.core.protocols import IUnitOfWork, UnitOfWorkFactory
from appealrouter.models.results import FaultKind, OperationResult

OperationBody = Callable[[IUnitOfWork], Awaitable[OperationResult]]


async def run_in_transaction(
    uow_factory: UnitOfWorkFactory,
    body: OperationBody,
    *,
    operation: str,
    max_attempts: int = 3,
) -> OperationResult:
    """Execute ``body`` atomically, retrying on version conflicts."""
    attempts = max(max_attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            async with uow_factory() as uow:
                result = await body(uow)
                if result.ok:
                    await uow.commit()
                else:
                    logger.info("{} not applied: {} ({})", operation, result.message, result.fault)
                return result
        except ConcurrencyConflictError as exc:
            logger.warning("{} hit a version conflict (attempt {}/{}): {}", operation, attempt, attempts, exc)
        except DomainValidationError as exc:
            logger.info("{} rejected: {}", operation, exc)
            return OperationResult.failure(FaultKind.VALIDATION, str(exc))
        except DomainRuleViolation as exc:
            logger.info("{} refused: {}", operation, exc)
            return OperationResult.failure(FaultKind.STATE_CONFLICT, str(exc))
        except AppealNotFoundError as exc:
            logger.info("{} failed: {}", operation, exc)
            return OperationResult.failure(FaultKind.NOT_FOUND, str(exc))
        except StorageError as exc:
            logger.error("{} failed on storage: {}", operation, exc)
            return OperationResult.failure(FaultKind.TRANSIENT, f"Storage failure: {exc}")

    return OperationResult.failure(
        FaultKind.TRANSIENT,
        f"{operation} gave up after {attempts} conflicting attempts",
    )
