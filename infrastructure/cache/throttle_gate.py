"""Upload throttle gate over a TTL counter store.

The counter is advisory: read-modify-write without locking, so two callers
racing on the same value may both get in. Every write re-arms the absolute
expiry, which lets a counter leaked by a crashed caller heal itself once
the TTL passes with no upload activity.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

from redis.exceptions import RedisError

from application.ports.throttle import CounterStore
from core.logging_config import get_logger

logger = get_logger(__name__)

ACTIVE_UPLOADS_KEY = "offload:active_uploads"

# 计数存储不可用时放行
_STORE_ERRORS = (RedisError, OSError)


class InMemoryCounterStore:
    """Single-process TTL store, used when no Redis is configured."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, tuple[int, float]] = {}
        self._texts: dict[str, str] = {}

    async def get(self, key: str) -> Optional[int]:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._values[key]
            return None
        return value

    async def set(self, key: str, value: int, ttl_seconds: int) -> None:
        self._values[key] = (int(value), self._clock() + ttl_seconds)

    async def get_text(self, key: str) -> Optional[str]:
        return self._texts.get(key)

    async def set_text(self, key: str, value: str) -> None:
        self._texts[key] = value


class CounterThrottleGate:
    """Admits at most ``max_concurrent`` uploads at a time."""

    def __init__(
        self,
        store: CounterStore,
        *,
        max_concurrent: int = 3,
        ttl_seconds: int = 300,
        key: str = ACTIVE_UPLOADS_KEY,
    ) -> None:
        self._store = store
        self._max = max_concurrent
        self._ttl = ttl_seconds
        self._key = key

    async def current(self) -> int:
        try:
            return await self._store.get(self._key) or 0
        except _STORE_ERRORS as exc:
            logger.warning("throttle_store_unavailable", op="get", error=str(exc))
            return 0

    async def _write(self, value: int) -> None:
        try:
            await self._store.set(self._key, value, self._ttl)
        except _STORE_ERRORS as exc:
            logger.warning("throttle_store_unavailable", op="set", error=str(exc))

    async def acquire(self) -> bool:
        active = await self.current()
        if active >= self._max:
            logger.info("upload_throttled", active=active, max_concurrent=self._max)
            return False
        await self._write(active + 1)
        return True

    async def release(self) -> None:
        active = await self.current()
        if active > 0:
            await self._write(active - 1)
