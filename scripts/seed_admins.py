"""Seed admin workloads and category expertise from a JSON roster.

Usage:
    python scripts/seed_admins.py --roster config/admins_seed.json --redis-host localhost
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any

from appealrouter.core.clock import SystemClock
from appealrouter.core.config import AppSettings
from appealrouter.core.protocols import IClock, UnitOfWorkFactory
from appealrouter.models.enums import AppealCategory
from appealrouter.persistence import create_persistence
from appealrouter.services.appeals import AppealWorkflowService
from appealrouter.services.assignment import AppealAssignmentService

DEFAULT_ROSTER = Path(__file__).resolve().parent.parent / "config" / "admins_seed.json"


def load_roster(path: Path) -> list[dict[str, Any]]:
    """Read the roster file. Each entry needs ``admin_id``; the rest is optional."""
    data = json.loads(path.read_text())
    admins = data["admins"]
    for entry in admins:
        if "admin_id" not in entry:
            raise ValueError(f"Roster entry without admin_id: {entry!r}")
    return admins


async def seed_admins(
    uow_factory: UnitOfWorkFactory, roster: list[dict[str, Any]], clock: IClock
) -> int:
    """Apply availability and expertise for every roster entry. Returns admins seeded."""
    assignment = AppealAssignmentService(uow_factory, clock)
    workflow = AppealWorkflowService(uow_factory, clock, assignment)

    seeded = 0
    for entry in roster:
        admin_id = int(entry["admin_id"])
        result = await assignment.set_admin_availability(admin_id, bool(entry.get("available", True)))
        if not result.ok:
            print(f"  Skipping admin {admin_id}: {result.message}")
            continue

        for category, level in entry.get("expertise", {}).items():
            result = await workflow.set_admin_expertise(admin_id, AppealCategory(category), int(level))
            if not result.ok:
                print(f"  Admin {admin_id} {category}: {result.message}")
        print(f"  Seeded admin {admin_id} ({entry.get('name', '')})")
        seeded += 1
    return seeded


async def _run(args: argparse.Namespace) -> int:
    settings = AppSettings()
    settings.storage_backend = "memory" if args.memory else "redis"
    settings.redis.host = args.redis_host
    settings.redis.port = args.redis_port
    settings.redis.db = args.redis_db
    settings.redis.key_prefix = args.key_prefix

    backend = create_persistence(settings)
    try:
        return await seed_admins(backend.unit_of_work, load_roster(Path(args.roster)), SystemClock())
    finally:
        await backend.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed admin workloads and expertise for the appeal router")
    parser.add_argument("--roster", default=str(DEFAULT_ROSTER), help="Path to the roster JSON file")
    parser.add_argument("--redis-host", default="localhost", help="Redis host")
    parser.add_argument("--redis-port", type=int, default=6379, help="Redis port")
    parser.add_argument("--redis-db", type=int, default=0, help="Redis database number")
    parser.add_argument("--key-prefix", default="appeals", help="Key prefix for stored entities")
    parser.add_argument("--memory", action="store_true", help="Dry run against the in-memory store")
    args = parser.parse_args()

    print("Seeding admins...")
    count = asyncio.run(_run(args))
    print(f"Done! {count} admin(s) seeded")


if __name__ == "__main__":
    main()
