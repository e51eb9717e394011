"""Shared fixtures: clock, in-memory store and wired services."""

from __future__ import annotations

import pytest

from appealrouter.core.config import AssignmentConfig, EscalationConfig
from appealrouter.services.appeals import AppealWorkflowService
from appealrouter.services.assignment import AppealAssignmentService
from appealrouter.services.escalation import EscalationMonitor
from tests.fakes import FixedClock, MemoryStoreBackend


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def backend():
    return MemoryStoreBackend()


@pytest.fixture
def assignment(backend, clock):
    return AppealAssignmentService(backend.unit_of_work, clock, AssignmentConfig())


@pytest.fixture
def workflow(backend, clock, assignment):
    return AppealWorkflowService(backend.unit_of_work, clock, assignment, AssignmentConfig())


@pytest.fixture
def monitor(backend, clock, assignment):
    return EscalationMonitor(
        backend.unit_of_work,
        clock,
        EscalationConfig(sla_hours=72),
        assignment_service=assignment,
    )
