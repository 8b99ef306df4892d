"""Redis 计数存储实现（上传节流计数器所用的共享 KV）"""
from __future__ import annotations

import asyncio
from typing import Optional

from redis import asyncio as aioredis

from core.config import settings
from core.logging_config import get_logger

logger = get_logger(__name__)


class RedisCounterStore:
    """基于Redis的整数计数存储，每次写入都带绝对过期时间"""

    def __init__(self, client: aioredis.Redis, namespace: str = "") -> None:
        self._client = client
        self._namespace = namespace.strip(":")

    def _format_key(self, key: str) -> str:
        if not self._namespace:
            return key
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> Optional[int]:
        value = await self._client.get(self._format_key(key))
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("counter_value_invalid", key=key, value=value)
            return None

    async def set(self, key: str, value: int, ttl_seconds: int) -> None:
        await self._client.set(self._format_key(key), int(value), ex=ttl_seconds)

    async def get_text(self, key: str) -> Optional[str]:
        return await self._client.get(self._format_key(key))

    async def set_text(self, key: str, value: str) -> None:
        await self._client.set(self._format_key(key), value)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def aclose(self) -> None:
        await self._client.aclose()


def create_redis_store(url: Optional[str] = None, namespace: Optional[str] = None) -> RedisCounterStore:
    """创建独立的Redis计数存储（调用方负责 aclose）"""
    redis_url = url or settings.redis.url
    if not redis_url:
        raise RuntimeError("redis.url 未配置，无法初始化Redis计数存储")
    client = aioredis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis.max_connections,
    )
    return RedisCounterStore(client=client, namespace=namespace or settings.redis.namespace)


_store_instance: Optional[RedisCounterStore] = None
_lock = asyncio.Lock()


async def init_redis_store(namespace: Optional[str] = None) -> RedisCounterStore:
    """初始化Redis计数存储实例"""
    global _store_instance

    if _store_instance is not None:
        return _store_instance

    async with _lock:
        if _store_instance is not None:
            return _store_instance

        _store_instance = create_redis_store(namespace=namespace)
        logger.info("redis_store_initialized", namespace=namespace or settings.redis.namespace)
        return _store_instance


def get_redis_store() -> Optional[RedisCounterStore]:
    """获取全局Redis计数存储实例（未初始化时返回 None）"""
    return _store_instance


async def shutdown_redis_store() -> None:
    """关闭Redis连接"""
    global _store_instance

    if _store_instance is not None:
        await _store_instance.aclose()
        _store_instance = None
