"""缓存层对外暴露的接口"""
from .redis_cache import (
    RedisCounterStore,
    create_redis_store,
    init_redis_store,
    shutdown_redis_store,
    get_redis_store,
)
from .throttle_gate import ACTIVE_UPLOADS_KEY, CounterThrottleGate, InMemoryCounterStore
from .sync_stats import LAST_SYNC_KEY, KeyValueSyncStatsStore

__all__ = [
    "RedisCounterStore",
    "create_redis_store",
    "init_redis_store",
    "shutdown_redis_store",
    "get_redis_store",
    "ACTIVE_UPLOADS_KEY",
    "CounterThrottleGate",
    "InMemoryCounterStore",
    "LAST_SYNC_KEY",
    "KeyValueSyncStatsStore",
]
