# packages/server/src/lingosync/infrastructure/queue/factory.py
"""启动时一次性选择任务队列实现。"""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog

from lingosync.config import LingoSyncConfig
from lingosync.infrastructure.redis import ping_redis
from lingosync.infrastructure.redis.queue import RedisJobQueue
from lingosync_core.interfaces import JobQueue

from ._dispatcher import JobDispatcher
from ._inline import InlineJobQueue

logger = structlog.get_logger(__name__)


def create_inline_queue(config: LingoSyncConfig, dispatcher: JobDispatcher) -> InlineJobQueue:
    q = config.queue
    return InlineJobQueue(
        dispatcher,
        max_attempts=q.max_attempts,
        backoff_base=q.backoff_base,
        job_timeout=q.job_timeout,
    )


async def create_job_queue(
    config: LingoSyncConfig,
    dispatcher: JobDispatcher,
    client: aioredis.Redis | None,
) -> JobQueue:
    """
    探测 broker：可达则使用 Redis Streams 队列，否则降级为内联队列并告警。
    """
    if config.queue.mode == "inline":
        logger.info("任务队列使用内联模式（配置指定）")
        return create_inline_queue(config, dispatcher)

    if client is not None and await ping_redis(client):
        queue = RedisJobQueue(client, dispatcher, config.queue)
        try:
            await queue.ensure_groups()
        except aioredis.RedisError as e:
            logger.warning("创建消费者组失败，降级为内联模式", error=str(e))
        else:
            logger.info("任务队列使用 Redis Streams 模式", prefix=config.queue.prefix)
            return queue

    logger.warning(
        "Redis 不可达或未配置，任务队列降级为内联模式；重试语义退化为单次立即执行",
        redis_configured=client is not None,
    )
    return create_inline_queue(config, dispatcher)
