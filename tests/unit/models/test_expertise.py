"""Tests for AdminCategoryExpertise levels and scoring."""

from __future__ import annotations

import pytest

from appealrouter.core.exceptions import DomainValidationError
from appealrouter.models.enums import AppealCategory
from appealrouter.models.workload import AdminCategoryExpertise
from tests.fakes import make_expertise

CATEGORY = AppealCategory.SCHOLARSHIP


class TestLevels:
    @pytest.mark.parametrize("level", [0, 6, -1])
    def test_create_rejects_out_of_range_level(self, clock, level):
        with pytest.raises(DomainValidationError):
            AdminCategoryExpertise.create(1, CATEGORY, clock.now(), experience_level=level)

    def test_set_experience_level_can_lower(self, clock):
        expertise = AdminCategoryExpertise.create(1, CATEGORY, clock.now(), experience_level=4)
        expertise.set_experience_level(2, clock.now())
        assert expertise.experience_level == 2

    def test_set_experience_level_validates(self, clock):
        expertise = AdminCategoryExpertise.create(1, CATEGORY, clock.now())
        with pytest.raises(DomainValidationError):
            expertise.set_experience_level(9, clock.now())


class TestRecordResolution:
    def test_counts_resolutions(self, clock):
        expertise = AdminCategoryExpertise.create(1, CATEGORY, clock.now())
        expertise.record_resolution(True, clock.now())
        expertise.record_resolution(False, clock.now())
        assert expertise.total_resolutions == 2
        assert expertise.successful_resolutions == 1

    def test_reaching_a_tier_upgrades_level(self, clock):
        expertise = make_expertise(1, CATEGORY, clock.now(), successful=4, total=4)
        expertise.record_resolution(True, clock.now())
        assert expertise.experience_level == 2

    def test_top_tier(self, clock):
        expertise = make_expertise(1, CATEGORY, clock.now(), successful=18, total=19)
        expertise.record_resolution(True, clock.now())
        assert expertise.experience_level == 5

    def test_level_never_decreases(self, clock):
        expertise = make_expertise(1, CATEGORY, clock.now(), level=5)
        for _ in range(10):
            expertise.record_resolution(False, clock.now())
        assert expertise.experience_level == 5


class TestScoring:
    def test_success_rate_is_zero_without_resolutions(self, clock):
        expertise = AdminCategoryExpertise.create(1, CATEGORY, clock.now())
        assert expertise.success_rate == 0.0
        assert expertise.calculate_expertise_score() == 20

    def test_score_formula(self, clock):
        expertise = make_expertise(1, CATEGORY, clock.now(), level=5, successful=18, total=20)
        # 5*20 + round(0.9*30) + min(20, 10)*2
        assert expertise.calculate_expertise_score() == 147

    def test_success_bonus_rounds_half_up(self, clock):
        expertise = make_expertise(1, CATEGORY, clock.now(), level=1, successful=1, total=4)
        # 0.25 * 30 = 7.5 -> 8
        assert expertise.calculate_expertise_score() == 20 + 8 + 8

    def test_score_non_decreasing_in_level(self, clock):
        scores = [
            make_expertise(1, CATEGORY, clock.now(), level=level, successful=3, total=6).calculate_expertise_score()
            for level in range(1, 6)
        ]
        assert scores == sorted(scores)

    def test_score_non_decreasing_in_success_rate(self, clock):
        scores = [
            make_expertise(1, CATEGORY, clock.now(), level=3, successful=s, total=10).calculate_expertise_score()
            for s in range(0, 11)
        ]
        assert scores == sorted(scores)
