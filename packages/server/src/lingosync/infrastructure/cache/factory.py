# packages/server/src/lingosync/infrastructure/cache/factory.py
from __future__ import annotations

import redis.asyncio as aioredis

from lingosync.config import LingoSyncConfig
from lingosync.infrastructure.redis import RedisCacheHandler
from lingosync_core.interfaces import CacheHandler

from .memory import MemoryCacheHandler


def create_cache_handler(
    config: LingoSyncConfig, client: aioredis.Redis | None
) -> CacheHandler:
    """有 Redis 客户端时使用分布式缓存，否则使用进程内 TTL 缓存。"""
    prefix = f"{config.redis.key_prefix}cache:"
    if client is None:
        return MemoryCacheHandler(
            key_prefix=prefix,
            maxsize=config.redis.cache.maxsize,
            ttl=config.redis.cache.ttl,
        )
    return RedisCacheHandler(client, key_prefix=prefix, timeout=config.redis.cache.timeout)
