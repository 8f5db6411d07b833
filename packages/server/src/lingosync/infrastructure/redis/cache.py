# packages/server/src/lingosync/infrastructure/redis/cache.py
"""
使用 Redis 实现 `CacheHandler` 接口。

缓存只是优化：读写删除的后端错误和超时都降级为未命中并记录警告，从不向上抛出。
按前缀清理（`delete_prefix`）除外。
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import redis.asyncio as aioredis
import structlog

from lingosync_core.interfaces import CacheHandler

SCAN_BATCH = 500


class RedisCacheHandler(CacheHandler):
    """基于 Redis 的分布式缓存实现。"""

    def __init__(
        self,
        client: aioredis.Redis,
        key_prefix: str = "ls:cache:",
        timeout: float = 2.0,
    ):
        self._client = client
        self._prefix = key_prefix
        self._timeout = timeout
        self._logger = structlog.get_logger(__name__)

    async def get(self, key: str) -> Any | None:
        """从 Redis 获取缓存值并反序列化。"""
        try:
            raw_value = await asyncio.wait_for(
                self._client.get(self._prefix + key), timeout=self._timeout
            )
        except (aioredis.RedisError, OSError, asyncio.TimeoutError) as e:
            self._logger.warning("Redis 缓存读取失败，按未命中处理", key=key, error=str(e))
            return None
        if raw_value is None:
            return None
        try:
            return json.loads(raw_value)
        except (json.JSONDecodeError, TypeError) as e:
            self._logger.warning("缓存值反序列化失败", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """序列化值并写入 Redis，支持 TTL。"""
        try:
            serialized_value = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            self._logger.warning(
                "缓存值序列化失败，跳过写入",
                key=key,
                value_type=type(value).__name__,
                error=str(e),
            )
            return
        try:
            await asyncio.wait_for(
                self._client.set(self._prefix + key, serialized_value, ex=ttl),
                timeout=self._timeout,
            )
        except (aioredis.RedisError, OSError, asyncio.TimeoutError) as e:
            self._logger.warning("Redis 缓存写入失败", key=key, ttl=ttl, error=str(e))

    async def delete(self, key: str) -> None:
        """从 Redis 删除指定键。"""
        try:
            await asyncio.wait_for(
                self._client.delete(self._prefix + key), timeout=self._timeout
            )
        except (aioredis.RedisError, OSError, asyncio.TimeoutError) as e:
            self._logger.warning("Redis 缓存删除失败", key=key, error=str(e))

    async def delete_prefix(self, prefix: str) -> int:
        """
        以 SCAN 遍历匹配前缀的键并分批删除，不阻塞 Redis。
        这是显式的运维操作，后端错误会向上抛出。
        """
        pattern = _escape_glob(self._prefix + prefix) + "*"
        deleted = 0
        batch: list[str] = []
        async for key in self._client.scan_iter(match=pattern, count=SCAN_BATCH):
            batch.append(key)
            if len(batch) >= SCAN_BATCH:
                deleted += await self._client.delete(*batch)
                batch = []
        if batch:
            deleted += await self._client.delete(*batch)
        self._logger.info("已按前缀清理缓存", prefix=prefix, deleted=deleted)
        return deleted


def _escape_glob(value: str) -> str:
    """转义 Redis MATCH 模式中的通配符。"""
    for char in ("\\", "*", "?", "[", "]"):
        value = value.replace(char, "\\" + char)
    return value
