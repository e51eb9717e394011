"""Redis store backend implementing IStoreBackend.

Entities are stored as JSON strings under ``{prefix}:{entity key}``. Index
sets track open appeals, known workloads and expertise records so listing
never needs SCAN. A commit WATCHes every staged key, re-checks stored
versions and writes everything in one MULTI/EXEC.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import redis.asyncio as redis
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError, WatchError

from appealrouter.core.exceptions import ConcurrencyConflictError, StorageError
from appealrouter.models.appeal import Appeal
from appealrouter.models.enums import AppealCategory
from appealrouter.models.workload import AdminCategoryExpertise, AdminWorkload
from appealrouter.persistence.keys import (
    APPEAL,
    EXPERTISE,
    WORKLOAD,
    appeal_key,
    expertise_key,
    kind_of,
    workload_key,
)
from appealrouter.persistence.unit_of_work import UnitOfWork

_MODELS: dict[str, type[BaseModel]] = {
    APPEAL: Appeal,
    WORKLOAD: AdminWorkload,
    EXPERTISE: AdminCategoryExpertise,
}


class RedisStoreBackend:
    """Production IStoreBackend backed by Redis."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        key_prefix: str = "appeals",
        client: Any = None,
    ) -> None:
        self._prefix = key_prefix
        self._client = client or redis.Redis(host=host, port=port, db=db, decode_responses=True)

    # ---- key helpers ----

    def _key(self, entity_key: str) -> str:
        return f"{self._prefix}:{entity_key}"

    @property
    def _open_appeals_index(self) -> str:
        return f"{self._prefix}:index:appeals:open"

    @property
    def _workloads_index(self) -> str:
        return f"{self._prefix}:index:workloads"

    @property
    def _expertise_index(self) -> str:
        return f"{self._prefix}:index:expertise"

    @property
    def _appeal_sequence(self) -> str:
        return f"{self._prefix}:seq:appeal"

    # ---- reads ----

    async def _get(self, entity_key: str) -> Optional[BaseModel]:
        try:
            raw = await self._client.get(self._key(entity_key))
        except RedisError as exc:
            raise StorageError(f"Redis GET failed for key={entity_key!r}: {exc}") from exc
        if raw is None:
            return None
        return self._decode(entity_key, raw)

    async def _get_indexed(self, index: str) -> list[BaseModel]:
        try:
            members = sorted(await self._client.smembers(index))
            if not members:
                return []
            rows = await self._client.mget([self._key(m) for m in members])
        except RedisError as exc:
            raise StorageError(f"Redis index read failed for {index!r}: {exc}") from exc
        return [self._decode(member, raw) for member, raw in zip(members, rows) if raw is not None]

    @staticmethod
    def _decode(entity_key: str, raw: str) -> BaseModel:
        try:
            return _MODELS[kind_of(entity_key)].model_validate_json(raw)
        except ValidationError as exc:
            raise StorageError(f"Malformed document at key={entity_key!r}: {exc}") from exc

    async def fetch_appeal(self, appeal_id: int) -> Optional[Appeal]:
        return await self._get(appeal_key(appeal_id))  # type: ignore[return-value]

    async def fetch_open_appeals(self) -> list[Appeal]:
        return await self._get_indexed(self._open_appeals_index)  # type: ignore[return-value]

    async def next_appeal_id(self) -> int:
        try:
            return int(await self._client.incr(self._appeal_sequence))
        except RedisError as exc:
            raise StorageError(f"Redis INCR failed for appeal sequence: {exc}") from exc

    async def fetch_workload(self, admin_id: int) -> Optional[AdminWorkload]:
        return await self._get(workload_key(admin_id))  # type: ignore[return-value]

    async def fetch_workloads(self) -> list[AdminWorkload]:
        return await self._get_indexed(self._workloads_index)  # type: ignore[return-value]

    async def fetch_expertise(
        self, admin_id: int, category: AppealCategory
    ) -> Optional[AdminCategoryExpertise]:
        return await self._get(expertise_key(admin_id, category))  # type: ignore[return-value]

    async def fetch_all_expertise(self) -> list[AdminCategoryExpertise]:
        return await self._get_indexed(self._expertise_index)  # type: ignore[return-value]

    # ---- writes ----

    async def apply(self, staged: dict[str, BaseModel]) -> None:
        redis_keys = {key: self._key(key) for key in staged}
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                await pipe.watch(*redis_keys.values())
                for key, entity in staged.items():
                    raw = await pipe.get(redis_keys[key])
                    actual = json.loads(raw)["version"] if raw is not None else 0
                    if actual != entity.version:  # type: ignore[attr-defined]
                        raise ConcurrencyConflictError(key, entity.version, actual)  # type: ignore[attr-defined]

                pipe.multi()
                for key, entity in staged.items():
                    document = entity.model_copy(update={"version": entity.version + 1})  # type: ignore[attr-defined]
                    pipe.set(redis_keys[key], document.model_dump_json())
                    self._queue_index_update(pipe, key, entity)
                await pipe.execute()
        except WatchError as exc:
            raise ConcurrencyConflictError(",".join(staged), -1, -1) from exc
        except RedisError as exc:
            raise StorageError(f"Redis commit failed: {exc}") from exc

        for entity in staged.values():
            entity.version += 1  # type: ignore[attr-defined]

    def _queue_index_update(self, pipe: Any, key: str, entity: BaseModel) -> None:
        kind = kind_of(key)
        if kind == APPEAL:
            if entity.is_closed:  # type: ignore[attr-defined]
                pipe.srem(self._open_appeals_index, key)
            else:
                pipe.sadd(self._open_appeals_index, key)
        elif kind == WORKLOAD:
            pipe.sadd(self._workloads_index, key)
        elif kind == EXPERTISE:
            pipe.sadd(self._expertise_index, key)

    def unit_of_work(self) -> UnitOfWork:
        """UnitOfWorkFactory bound to this backend."""
        return UnitOfWork(self)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as exc:
            raise StorageError(f"Redis PING failed: {exc}") from exc

    async def close(self) -> None:
        await self._client.aclose()
