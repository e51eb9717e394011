"""Candidate pipeline for choosing an admin: filter, score, sort.

Each stage is a plain function over already-loaded records so it can be
tested without storage. :func:`select_best_admin` chains them into the two
phases: category experts first, then the least-loaded available admin.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import Optional

from pydantic import BaseModel

from appealrouter.models.enums import AppealCategory
from appealrouter.models.workload import AdminCategoryExpertise, AdminWorkload


class AdminCandidate(BaseModel):
    """An admin under consideration, with a category score when they have one."""

    workload: AdminWorkload
    expertise_score: Optional[int] = None

    @property
    def admin_id(self) -> int:
        return self.workload.admin_id

    @property
    def is_expert(self) -> bool:
        return self.expertise_score is not None


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def only_available(workloads: Iterable[AdminWorkload]) -> list[AdminWorkload]:
    return [w for w in workloads if w.is_available]


def exclude_admins(workloads: Iterable[AdminWorkload], excluded: Collection[int]) -> list[AdminWorkload]:
    return [w for w in workloads if w.admin_id not in excluded]


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def score_experts(
    workloads: Iterable[AdminWorkload],
    expertise: Iterable[AdminCategoryExpertise],
    category: AppealCategory,
) -> list[AdminCandidate]:
    """Candidates for admins holding expertise in ``category``, scored by their best record."""
    best: dict[int, int] = {}
    for record in expertise:
        if record.category != category:
            continue
        score = record.calculate_expertise_score()
        best[record.admin_id] = max(score, best.get(record.admin_id, score))

    return [
        AdminCandidate(workload=w, expertise_score=best[w.admin_id])
        for w in workloads
        if w.admin_id in best
    ]


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------

def rank_experts(candidates: Iterable[AdminCandidate]) -> list[AdminCandidate]:
    """Highest score first, then fewest active appeals."""
    return sorted(
        candidates,
        key=lambda c: (-(c.expertise_score or 0), c.workload.active_appeals_count, c.admin_id),
    )


def rank_by_workload(workloads: Iterable[AdminWorkload]) -> list[AdminCandidate]:
    """Fewest active appeals first, then the most recently active admin."""
    ordered = sorted(
        workloads,
        key=lambda w: (w.active_appeals_count, -w.last_activity_at.timestamp(), w.admin_id),
    )
    return [AdminCandidate(workload=w) for w in ordered]


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def select_best_admin(
    workloads: Iterable[AdminWorkload],
    expertise: Iterable[AdminCategoryExpertise],
    category: AppealCategory,
    exclude: Collection[int] = (),
) -> Optional[AdminCandidate]:
    """Best candidate for an appeal in ``category``, or None when nobody is available."""
    pool = exclude_admins(only_available(workloads), exclude)
    if not pool:
        return None

    experts = rank_experts(score_experts(pool, expertise, category))
    if experts:
        return experts[0]
    return rank_by_workload(pool)[0]
