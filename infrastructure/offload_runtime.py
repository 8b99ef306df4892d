"""Composition root for the offload lifecycle service.

The API process keeps one long-lived service (``init_offload_service`` in
the FastAPI lifespan). Celery tasks run each job in a fresh event loop and
use ``offload_service_scope`` so every connection is opened and closed
inside that loop.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncIterator, Optional

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from application.ports.throttle import CounterStore
from application.services.offload_config import OffloadConfiguration
from application.services.offload_service import OffloadLifecycleService
from core.config import settings
from core.logging_config import get_logger
from infrastructure.cache import (
    CounterThrottleGate,
    InMemoryCounterStore,
    KeyValueSyncStatsStore,
    create_redis_store,
    init_redis_store,
    shutdown_redis_store,
)
from infrastructure.external.storage import (
    BunnyStorageClient,
    init_storage_client,
    shutdown_storage_client,
)
from infrastructure.database import create_scoped_engine
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

logger = get_logger(__name__)

_configuration: Optional[OffloadConfiguration] = None
_service: Optional[OffloadLifecycleService] = None
# In-memory fallback shared by every service built in this process
_memory_store: Optional[InMemoryCounterStore] = None


def get_offload_configuration() -> OffloadConfiguration:
    """Process-wide runtime settings, loaded from ``settings.offload`` once."""
    global _configuration
    if _configuration is None:
        _configuration = OffloadConfiguration(settings.offload.model_copy())
    return _configuration


def _memory_counter_store() -> InMemoryCounterStore:
    global _memory_store
    if _memory_store is None:
        logger.warning(
            "throttle_store_in_memory",
            message="redis.url not configured; upload throttle is per-process",
        )
        _memory_store = InMemoryCounterStore()
    return _memory_store


def build_gate(store: CounterStore, configuration: OffloadConfiguration) -> CounterThrottleGate:
    s = configuration.settings
    return CounterThrottleGate(
        store,
        max_concurrent=s.max_concurrent_uploads,
        ttl_seconds=s.throttle_ttl_seconds,
    )


def build_service(
    configuration: OffloadConfiguration,
    storage: BunnyStorageClient,
    store: CounterStore,
    uow_factory=SQLAlchemyUnitOfWork,
) -> OffloadLifecycleService:
    return OffloadLifecycleService(
        uow_factory,
        configuration,
        storage,
        build_gate(store, configuration),
        sync_stats=KeyValueSyncStatsStore(store),
    )


async def init_offload_service(
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> OffloadLifecycleService:
    """Build the API process service and its shared clients."""
    global _service
    if _service is not None:
        return _service

    configuration = get_offload_configuration()
    storage = await init_storage_client(
        configuration.credentials,
        user_agent=configuration.settings.user_agent,
        transport=transport,
    )
    store: CounterStore = await init_redis_store() if settings.redis.url else _memory_counter_store()
    _service = build_service(configuration, storage, store)
    logger.info(
        "offload_service_initialized",
        enabled=configuration.is_enabled(),
        offload_after_upload=configuration.settings.offload_after_upload_enabled,
    )
    return _service


def get_offload_service() -> Optional[OffloadLifecycleService]:
    return _service


async def shutdown_offload_service() -> None:
    global _service
    if _service is None:
        return
    try:
        await shutdown_storage_client()
        await shutdown_redis_store()
    finally:
        _service = None
        logger.info("offload_service_shutdown")


@asynccontextmanager
async def offload_service_scope(
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[OffloadLifecycleService]:
    """Short-lived service bound to the running event loop.

    The storage client, the Redis connection and a pool-less database
    engine are all created here and closed when the block exits, so no
    connection outlives the loop that opened it.
    """
    configuration = get_offload_configuration()
    storage = BunnyStorageClient(
        configuration.credentials,
        user_agent=configuration.settings.user_agent,
        transport=transport,
    )
    redis_store = create_redis_store() if settings.redis.url else None
    engine = create_scoped_engine()
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    try:
        yield build_service(
            configuration,
            storage,
            redis_store or _memory_counter_store(),
            uow_factory=partial(SQLAlchemyUnitOfWork, session_factory),
        )
    finally:
        await storage.aclose()
        if redis_store is not None:
            await redis_store.aclose()
        await engine.dispose()
