"""Pluggable store backends behind the IStoreBackend protocol."""

from __future__ import annotations

from appealrouter.core.config import AppSettings
from appealrouter.persistence.memory_backend import MemoryStoreBackend
from appealrouter.persistence.redis_backend import RedisStoreBackend
from appealrouter.persistence.unit_of_work import UnitOfWork


def create_persistence(settings: AppSettings | None = None) -> MemoryStoreBackend | RedisStoreBackend:
    """Create the store backend selected by ``settings.storage_backend``.

    The backend's ``unit_of_work`` method is the UnitOfWorkFactory handed to
    the services.
    """
    if settings is None:
        settings = AppSettings()

    if settings.storage_backend == "redis":
        return RedisStoreBackend(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
            key_prefix=settings.redis.key_prefix,
        )
    return MemoryStoreBackend()


__all__ = ["MemoryStoreBackend", "RedisStoreBackend", "UnitOfWork", "create_persistence"]
