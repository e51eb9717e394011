"""Tests for AppealAssignmentService against the in-memory store."""

from __future__ import annotations

import pytest

from appealrouter.core.config import AssignmentConfig
from appealrouter.models.enums import AppealCategory, AppealPriority, AppealStatus
from appealrouter.models.results import FaultKind
from appealrouter.services.assignment import AppealAssignmentService
from tests.fakes import FlakyStoreBackend, make_appeal, make_expertise, make_workload

SCHOLARSHIP = AppealCategory.SCHOLARSHIP


def _seed_scenario(backend, clock, expert_available=True):
    backend.put(make_workload(1, clock.now(), active=3, available=expert_available))
    backend.put(make_workload(2, clock.now(), active=0))
    backend.put(make_expertise(1, SCHOLARSHIP, clock.now(), level=5, successful=18, total=20))


def _stored_appeal(backend, clock, **kwargs):
    appeal = make_appeal(clock.now(), **kwargs)
    backend.put(appeal)
    return appeal


class TestAssignAppeal:
    @pytest.mark.asyncio
    async def test_expert_is_chosen(self, backend, clock, assignment):
        _seed_scenario(backend, clock)
        appeal = _stored_appeal(backend, clock)

        result = await assignment.assign_appeal(appeal)

        assert result.ok and result.admin_id == 1
        stored = await backend.fetch_appeal(appeal.id)
        assert stored.assigned_admin_id == 1
        assert stored.status == AppealStatus.IN_PROGRESS
        workload = await backend.fetch_workload(1)
        assert workload.active_appeals_count == 4
        assert workload.total_appeals_count == 4

    @pytest.mark.asyncio
    async def test_falls_back_to_least_loaded(self, backend, clock, assignment):
        _seed_scenario(backend, clock, expert_available=False)
        appeal = _stored_appeal(backend, clock)

        result = await assignment.assign_appeal(appeal.id)

        assert result.admin_id == 2
        assert (await backend.fetch_workload(2)).active_appeals_count == 1

    @pytest.mark.asyncio
    async def test_no_admin_available_leaves_appeal_untouched(self, backend, clock, assignment):
        backend.put(make_workload(1, clock.now(), available=False))
        appeal = _stored_appeal(backend, clock)

        result = await assignment.assign_appeal(appeal)

        assert not result.ok
        assert result.no_admin_available
        stored = await backend.fetch_appeal(appeal.id)
        assert stored.assigned_admin_id is None
        assert stored.status == AppealStatus.NEW
        assert stored.version == appeal.version

    @pytest.mark.asyncio
    async def test_already_assigned_is_a_state_conflict(self, backend, clock, assignment):
        _seed_scenario(backend, clock)
        appeal = _stored_appeal(backend, clock)
        await assignment.assign_appeal(appeal)

        result = await assignment.assign_appeal(appeal)

        assert result.fault == FaultKind.STATE_CONFLICT
        assert (await backend.fetch_workload(1)).active_appeals_count == 4

    @pytest.mark.asyncio
    async def test_closed_appeal_is_rejected(self, backend, clock, assignment):
        _seed_scenario(backend, clock)
        appeal = make_appeal(clock.now())
        appeal.close(9, "Duplicate", clock.now())
        backend.put(appeal)

        result = await assignment.assign_appeal(appeal)

        assert result.fault == FaultKind.STATE_CONFLICT
        assert (await backend.fetch_workload(1)).active_appeals_count == 3

    @pytest.mark.asyncio
    async def test_unknown_appeal_is_not_found(self, assignment):
        result = await assignment.assign_appeal(404)
        assert result.fault == FaultKind.NOT_FOUND


class TestAssignAppealToAdmin:
    @pytest.mark.asyncio
    async def test_direct_assignment_creates_workload_lazily(self, backend, clock, assignment):
        appeal = _stored_appeal(backend, clock)

        result = await assignment.assign_appeal_to_admin(appeal, 42)

        assert result.ok
        workload = await backend.fetch_workload(42)
        assert workload.active_appeals_count == 1
        assert (await backend.fetch_appeal(appeal.id)).assigned_admin_id == 42

    @pytest.mark.asyncio
    async def test_unavailable_admin_is_rejected(self, backend, clock, assignment):
        backend.put(make_workload(5, clock.now(), available=False))
        appeal = _stored_appeal(backend, clock)

        result = await assignment.assign_appeal_to_admin(appeal, 5)

        assert result.fault == FaultKind.ADMIN_UNAVAILABLE
        assert (await backend.fetch_appeal(appeal.id)).assigned_admin_id is None

    @pytest.mark.asyncio
    async def test_moving_to_another_admin_moves_the_count(self, backend, clock, assignment):
        appeal = _stored_appeal(backend, clock)
        await assignment.assign_appeal_to_admin(appeal, 5)

        result = await assignment.assign_appeal_to_admin(appeal, 6)

        assert result.ok
        assert (await backend.fetch_workload(5)).active_appeals_count == 0
        assert (await backend.fetch_workload(6)).active_appeals_count == 1

    @pytest.mark.asyncio
    async def test_same_admin_is_a_no_op(self, backend, clock, assignment):
        appeal = _stored_appeal(backend, clock)
        await assignment.assign_appeal_to_admin(appeal, 5)

        result = await assignment.assign_appeal_to_admin(appeal, 5)

        assert result.ok
        assert (await backend.fetch_workload(5)).active_appeals_count == 1

    @pytest.mark.asyncio
    async def test_non_positive_admin_is_a_validation_fault(self, backend, clock, assignment):
        appeal = _stored_appeal(backend, clock)
        result = await assignment.assign_appeal_to_admin(appeal, 0)
        assert result.fault == FaultKind.VALIDATION


class TestReassignAppeal:
    @pytest.mark.asyncio
    async def test_previous_admin_is_released_and_excluded(self, backend, clock, assignment):
        _seed_scenario(backend, clock)
        appeal = _stored_appeal(backend, clock)
        await assignment.assign_appeal(appeal)

        result = await assignment.reassign_appeal(appeal, reason="Admin on leave")

        assert result.ok and result.admin_id == 2
        assert (await backend.fetch_workload(1)).active_appeals_count == 3
        assert (await backend.fetch_workload(2)).active_appeals_count == 1
        assert (await backend.fetch_appeal(appeal.id)).assigned_admin_id == 2

    @pytest.mark.asyncio
    async def test_nobody_else_available_commits_nothing(self, backend, clock, assignment):
        backend.put(make_workload(1, clock.now()))
        appeal = _stored_appeal(backend, clock)
        await assignment.assign_appeal(appeal)

        result = await assignment.reassign_appeal(appeal, reason="Rebalance")

        assert result.no_admin_available
        assert (await backend.fetch_workload(1)).active_appeals_count == 1
        assert (await backend.fetch_appeal(appeal.id)).assigned_admin_id == 1

    @pytest.mark.asyncio
    async def test_without_exclusion_the_same_admin_may_win(self, backend, clock):
        service = AppealAssignmentService(
            backend.unit_of_work, clock, AssignmentConfig(exclude_previous_admin_on_reassign=False)
        )
        backend.put(make_workload(1, clock.now()))
        appeal = _stored_appeal(backend, clock)
        await service.assign_appeal(appeal)

        result = await service.reassign_appeal(appeal, reason="Refresh")

        assert result.admin_id == 1
        workload = await backend.fetch_workload(1)
        assert workload.active_appeals_count == 1
        assert workload.total_appeals_count == 2

    @pytest.mark.asyncio
    async def test_closed_appeal_cannot_be_reassigned(self, backend, clock, assignment):
        appeal = make_appeal(clock.now())
        appeal.close(9, "Done", clock.now())
        backend.put(appeal)
        result = await assignment.reassign_appeal(appeal, reason="Late")
        assert result.fault == FaultKind.STATE_CONFLICT


class TestFindBestAdmin:
    @pytest.mark.asyncio
    async def test_ranks_without_writing(self, backend, clock, assignment):
        _seed_scenario(backend, clock)

        result = await assignment.find_best_admin_for_appeal(SCHOLARSHIP, AppealPriority.URGENT)

        assert result.admin_id == 1
        assert (await backend.fetch_workload(1)).active_appeals_count == 3

    @pytest.mark.asyncio
    async def test_no_admin(self, assignment):
        result = await assignment.find_best_admin_for_appeal(SCHOLARSHIP, AppealPriority.NORMAL)
        assert result.no_admin_available

    @pytest.mark.asyncio
    async def test_available_admins_for_category(self, backend, clock, assignment):
        _seed_scenario(backend, clock)
        backend.put(make_workload(3, clock.now(), active=1))
        backend.put(make_expertise(3, SCHOLARSHIP, clock.now(), level=2))

        admins = await assignment.get_available_admins_for_category(SCHOLARSHIP)

        assert [w.admin_id for w in admins] == [3, 1]


class TestWorkloadUpdates:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("old, new, expected_active", [
        (AppealStatus.WAITING_FOR_ADMIN, AppealStatus.IN_PROGRESS, 2),
        (AppealStatus.IN_PROGRESS, AppealStatus.CLOSED, 0),
        (AppealStatus.NEW, AppealStatus.IN_PROGRESS, 1),
        (AppealStatus.ESCALATED, AppealStatus.CLOSED, 1),
    ])
    async def test_active_status_transitions(self, backend, clock, assignment, old, new, expected_active):
        backend.put(make_workload(1, clock.now(), active=1))
        activity_at = clock.advance(hours=1)

        result = await assignment.update_admin_workload(1, old, new)

        assert result.ok
        workload = await backend.fetch_workload(1)
        assert workload.active_appeals_count == expected_active
        assert workload.last_activity_at == activity_at

    @pytest.mark.asyncio
    async def test_set_availability(self, backend, clock, assignment):
        result = await assignment.set_admin_availability(8, False)

        assert result.ok
        assert (await backend.fetch_workload(8)).is_available is False

    @pytest.mark.asyncio
    async def test_set_availability_validates_id(self, assignment):
        result = await assignment.set_admin_availability(-1, True)
        assert result.fault == FaultKind.VALIDATION


class TestWorkloadStats:
    @pytest.mark.asyncio
    async def test_aggregates(self, backend, clock, assignment):
        _seed_scenario(backend, clock)
        backend.put(make_workload(3, clock.now(), active=5, available=False))
        backend.put(make_expertise(2, SCHOLARSHIP, clock.now(), level=2))
        _stored_appeal(backend, clock)
        _stored_appeal(backend, clock, category=AppealCategory.EVENTS)

        stats = await assignment.get_workload_stats()

        assert stats.total_admins == 3
        assert stats.available_admins == 2
        assert stats.total_active_appeals == 8
        assert stats.average_appeals_per_admin == pytest.approx(8 / 3)
        assert stats.most_loaded_admin.admin_id == 3
        assert stats.least_loaded_admin.admin_id == 2
        scholarship = next(c for c in stats.category_stats if c.category == SCHOLARSHIP)
        assert scholarship.active_appeals == 1
        assert scholarship.available_experts == 2
        assert scholarship.average_expertise_level == pytest.approx(3.5)

    @pytest.mark.asyncio
    async def test_empty_store(self, assignment):
        stats = await assignment.get_workload_stats()
        assert stats.total_admins == 0
        assert stats.average_appeals_per_admin == 0.0
        assert stats.most_loaded_admin is None
        assert stats.least_loaded_admin is None


class TestConflictRetry:
    @pytest.mark.asyncio
    async def test_conflict_is_retried_from_a_fresh_read(self, clock):
        backend = FlakyStoreBackend(conflicts=2)
        service = AppealAssignmentService(backend.unit_of_work, clock, AssignmentConfig(max_conflict_retries=3))
        backend.put(make_workload(1, clock.now()))
        appeal = make_appeal(clock.now())
        backend.put(appeal)

        result = await service.assign_appeal(appeal)

        assert result.ok
        assert backend.apply_calls == 3
        assert (await backend.fetch_workload(1)).active_appeals_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_with_transient_fault(self, clock):
        backend = FlakyStoreBackend(conflicts=5)
        service = AppealAssignmentService(backend.unit_of_work, clock, AssignmentConfig(max_conflict_retries=2))
        backend.put(make_workload(1, clock.now()))
        appeal = make_appeal(clock.now())
        backend.put(appeal)

        result = await service.assign_appeal(appeal)

        assert result.fault == FaultKind.TRANSIENT
        assert backend.apply_calls == 2
        assert (await backend.fetch_workload(1)).active_appeals_count == 0

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_retried(self, clock):
        backend = FlakyStoreBackend(storage_failures=1)
        service = AppealAssignmentService(backend.unit_of_work, clock)
        backend.put(make_workload(1, clock.now()))
        appeal = make_appeal(clock.now())
        backend.put(appeal)

        result = await service.assign_appeal(appeal)

        assert result.fault == FaultKind.TRANSIENT
        assert backend.apply_calls == 1
