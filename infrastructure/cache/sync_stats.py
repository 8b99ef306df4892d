"""最近一次同步结果的存储（与节流计数器共用同一个 KV）"""
from __future__ import annotations

from typing import Optional, Protocol

from pydantic import ValidationError
from redis.exceptions import RedisError

from application.dto import SyncReport
from core.logging_config import get_logger

logger = get_logger(__name__)

LAST_SYNC_KEY = "offload:last_sync"


class TextStore(Protocol):
    async def get_text(self, key: str) -> Optional[str]: ...

    async def set_text(self, key: str, value: str) -> None: ...


class KeyValueSyncStatsStore:
    """以 JSON 保存 SyncReport；存储不可用时只记录警告"""

    def __init__(self, store: TextStore, key: str = LAST_SYNC_KEY) -> None:
        self._store = store
        self._key = key

    async def save(self, report: SyncReport) -> None:
        try:
            await self._store.set_text(self._key, report.model_dump_json())
        except (RedisError, OSError) as exc:
            logger.warning("sync_stats_store_unavailable", op="save", error=str(exc))

    async def load(self) -> Optional[SyncReport]:
        try:
            raw = await self._store.get_text(self._key)
        except (RedisError, OSError) as exc:
            logger.warning("sync_stats_store_unavailable", op="load", error=str(exc))
            return None
        if not raw:
            return None
        try:
            return SyncReport.model_validate_json(raw)
        except ValidationError:
            logger.warning("sync_stats_invalid", key=self._key)
            return None
