# packages/server/src/lingosync/infrastructure/redis/_client.py
"""
集中管理 Redis 客户端的创建和生命周期。

客户端的创建是惰性的（不发起连接）；是否可达由 `ping_redis` 在启动时探测一次。
"""

from __future__ import annotations

import asyncio

import redis.asyncio as aioredis
import structlog

from lingosync.config import LingoSyncConfig

logger = structlog.get_logger(__name__)

PING_TIMEOUT = 2.0


def create_redis_client(config: LingoSyncConfig) -> aioredis.Redis | None:
    """根据配置创建 Redis 异步客户端；未配置 URL 时返回 None。"""
    url = config.redis.url
    if not url:
        return None
    return aioredis.from_url(url, decode_responses=True)


async def ping_redis(client: aioredis.Redis | None) -> bool:
    """探测 Redis 是否可达。任何错误都视为不可达。"""
    if client is None:
        return False
    try:
        return bool(await asyncio.wait_for(client.ping(), timeout=PING_TIMEOUT))
    except (aioredis.RedisError, OSError, asyncio.TimeoutError) as e:
        logger.warning("Redis 不可达", error=str(e))
        return False


async def close_redis_client(client: aioredis.Redis | None) -> None:
    """关闭 Redis 客户端连接。"""
    if client is not None:
        await client.aclose()
