# packages/server/src/lingosync/infrastructure/redis/queue.py
"""
基于 Redis Streams 的三通道任务队列（broker 模式）。

每条通道使用以下键（`{p}` = 队列前缀 + 通道名）：

- `{p}`          Stream，消费者组通过 XREADGROUP 投递，处理结束后才 XACK
- `{p}:delayed`  有序集合，score 为到期时间戳，存放等待退避的重试任务
- `{p}:dead`     列表，存放耗尽重试或不可重试的任务
- `{p}:stats`    哈希，waiting/active/completed/failed 计数

崩溃消费者遗留的未确认投递由 XAUTOCLAIM 接管，因此投递语义为至少一次。
"""

from __future__ import annotations

import asyncio
import json
import os
import socket
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import redis.asyncio as aioredis
import structlog
from pydantic import ValidationError as PydanticValidationError

from lingosync.config import QueueSettings
from lingosync_core.types import Job, JobKind, JobReceipt, Lane, LaneStats

if TYPE_CHECKING:
    from lingosync.infrastructure.queue import JobDispatcher

logger = structlog.get_logger(__name__)

PROMOTE_BATCH = 100

# 从延迟集合或死信列表移回 Stream 为单个原子操作；只有删除成功的一方写入 Stream。
PROMOTE_SCRIPT = """
if redis.call('ZREM', KEYS[1], ARGV[1]) == 1 then
  redis.call('XADD', KEYS[2], '*', 'job', ARGV[1])
  return 1
end
return 0
"""

REVIVE_SCRIPT = """
if redis.call('LREM', KEYS[1], -1, ARGV[1]) == 1 then
  redis.call('XADD', KEYS[2], '*', 'job', ARGV[2])
  return 1
end
return 0
"""


def default_consumer_name() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class RedisJobQueue:
    mode = "redis"

    def __init__(
        self,
        client: aioredis.Redis,
        dispatcher: "JobDispatcher",
        settings: QueueSettings,
        consumer_name: str | None = None,
    ):
        self._client = client
        self._dispatcher = dispatcher
        self._settings = settings
        self._group = settings.consumer_group
        self.consumer_name = consumer_name or default_consumer_name()
        self._promote = client.register_script(PROMOTE_SCRIPT)
        self._revive = client.register_script(REVIVE_SCRIPT)

    # --- 键与配置 ---

    def stream_key(self, lane: Lane) -> str:
        return f"{self._settings.prefix}{Lane(lane).value}"

    def delayed_key(self, lane: Lane) -> str:
        return f"{self.stream_key(lane)}:delayed"

    def dead_key(self, lane: Lane) -> str:
        return f"{self.stream_key(lane)}:dead"

    def stats_key(self, lane: Lane) -> str:
        return f"{self.stream_key(lane)}:stats"

    def concurrency_for(self, lane: Lane) -> int:
        return int(getattr(self._settings, f"{Lane(lane).value}_concurrency"))

    async def ensure_groups(self) -> None:
        """为每条通道创建消费者组（幂等）。"""
        for lane in Lane:
            try:
                await self._client.xgroup_create(
                    self.stream_key(lane), self._group, id="0", mkstream=True
                )
            except aioredis.ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise

    # --- 生产 ---

    async def _add(self, lane: Lane, raw_job: str) -> None:
        await self._client.xadd(self.stream_key(lane), {"job": raw_job})

    async def enqueue(
        self,
        kind: JobKind,
        payload: dict[str, Any],
        *,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
    ) -> JobReceipt:
        job = Job(
            kind=JobKind(kind),
            payload=payload,
            max_attempts=max_attempts or self._settings.max_attempts,
            backoff_base=backoff_base or self._settings.backoff_base,
        )
        await self._add(job.lane, job.model_dump_json())
        await self._client.hincrby(self.stats_key(job.lane), "waiting", 1)
        logger.debug("任务已入队", job_id=job.id, lane=job.lane.value, kind=job.kind.value)
        return JobReceipt(job_id=job.id, lane=job.lane, kind=job.kind, mode="redis")

    async def promote_due(self, lane: Lane) -> int:
        """把到期的延迟重试任务移回 Stream。"""
        delayed = self.delayed_key(lane)
        due = await self._client.zrangebyscore(
            delayed, "-inf", time.time(), start=0, num=PROMOTE_BATCH
        )
        promoted = 0
        for raw in due:
            if await self._promote(keys=[delayed, self.stream_key(lane)], args=[raw]):
                promoted += 1
        return promoted

    # --- 消费 ---

    async def drain_once(self, lane: Lane, count: int) -> int:
        lane = Lane(lane)
        await self.promote_due(lane)
        response = await self._client.xreadgroup(
            self._group,
            self.consumer_name,
            {self.stream_key(lane): ">"},
            count=count,
            block=self._settings.block_ms or None,
        )
        entries = response[0][1] if response else []
        await asyncio.gather(
            *(self._handle_entry(lane, entry_id, fields) for entry_id, fields in entries)
        )
        return len(entries)

    async def reclaim_stale(self, lane: Lane) -> int:
        """接管空闲超过 claim_idle_ms 的未确认投递。"""
        lane = Lane(lane)
        result = await self._client.xautoclaim(
            self.stream_key(lane),
            self._group,
            self.consumer_name,
            min_idle_time=self._settings.claim_idle_ms,
            start_id="0-0",
            count=self.concurrency_for(lane),
        )
        entries = [(eid, fields) for eid, fields in result[1] if fields]
        if entries:
            logger.warning("接管了崩溃消费者遗留的任务", lane=lane.value, count=len(entries))
        await asyncio.gather(
            *(
                self._handle_entry(lane, entry_id, fields, reclaimed=True)
                for entry_id, fields in entries
            )
        )
        return len(entries)

    async def _handle_entry(
        self,
        lane: Lane,
        entry_id: str,
        fields: dict[str, str],
        *,
        reclaimed: bool = False,
    ) -> None:
        stream = self.stream_key(lane)
        stats = self.stats_key(lane)
        raw = fields.get("job")
        try:
            job = Job.model_validate_json(raw or "")
        except PydanticValidationError as e:
            logger.error("无法解析的任务，转入死信", lane=lane.value, entry_id=entry_id)
            await self._client.lpush(self.dead_key(lane), self._dead_entry(raw, e))
            if not reclaimed:
                await self._client.hincrby(stats, "waiting", -1)
            await self._client.hincrby(stats, "failed", 1)
            await self._ack(stream, entry_id)
            return

        if not reclaimed:
            await self._client.hincrby(stats, "waiting", -1)
            await self._client.hincrby(stats, "active", 1)
        job.attempts += 1
        log = logger.bind(
            job_id=job.id,
            lane=lane.value,
            kind=job.kind.value,
            attempt=job.attempts,
            max_attempts=job.max_attempts,
            tenant_id=job.payload.get("tenant_id"),
            record_id=job.payload.get("record_id"),
        )
        try:
            await asyncio.wait_for(
                self._dispatcher.dispatch(job), timeout=self._settings.job_timeout
            )
        except Exception as e:
            # 重试或死信写入失败时不确认，条目留在 PEL 中等待 XAUTOCLAIM 接管
            await self._on_failure(job, e, log)
        else:
            await self._client.hincrby(stats, "active", -1)
            await self._client.hincrby(stats, "completed", 1)
            log.debug("任务处理完成")
        await self._ack(stream, entry_id)

    async def _on_failure(self, job: Job, error: Exception, log: Any) -> None:
        stats = self.stats_key(job.lane)
        message = str(error) or type(error).__name__
        retryable = getattr(error, "retryable", True)

        if retryable and not job.exhausted:
            delay = job.backoff_delay()
            await self._client.zadd(
                self.delayed_key(job.lane), {job.model_dump_json(): time.time() + delay}
            )
            await self._client.hincrby(stats, "active", -1)
            await self._client.hincrby(stats, "waiting", 1)
            log.warning("任务失败，将在退避后重试", error=message, retry_in=delay)
            return

        await self._client.lpush(
            self.dead_key(job.lane), self._dead_entry(job.model_dump(mode="json"), error)
        )
        await self._client.hincrby(stats, "active", -1)
        await self._client.hincrby(stats, "failed", 1)
        log.error(
            "任务失败且不再重试，已转入死信",
            error=message,
            retryable=retryable,
        )

    async def _ack(self, stream: str, entry_id: str) -> None:
        await self._client.xack(stream, self._group, entry_id)
        await self._client.xdel(stream, entry_id)

    @staticmethod
    def _dead_entry(job: Any, error: Exception) -> str:
        return json.dumps(
            {
                "job": job,
                "error": str(error) or type(error).__name__,
                "failed_at": datetime.now(timezone.utc).isoformat(),
            },
            ensure_ascii=False,
        )

    # --- 运维 ---

    async def stats(self) -> dict[str, LaneStats]:
        result: dict[str, LaneStats] = {}
        for lane in Lane:
            raw = await self._client.hgetall(self.stats_key(lane))
            result[lane.value] = LaneStats(
                **{k: max(int(raw.get(k, 0)), 0) for k in LaneStats.model_fields}
            )
        return result

    async def dead_jobs(self, lane: Lane, limit: int = 50) -> list[dict[str, Any]]:
        raws = await self._client.lrange(self.dead_key(lane), 0, limit - 1)
        entries: list[dict[str, Any]] = []
        for raw in raws:
            try:
                entries.append(json.loads(raw))
            except json.JSONDecodeError:
                entries.append({"job": raw, "error": "无法解析的死信条目"})
        return entries

    async def requeue_dead(self, lane: Lane, limit: int = 50) -> list[Job]:
        """把死信任务（最早的优先）重新投递，尝试次数清零。"""
        lane = Lane(lane)
        dead = self.dead_key(lane)
        revived: list[Job] = []
        for _ in range(limit):
            raw = await self._client.lindex(dead, -1)
            if raw is None:
                break
            try:
                job = Job.model_validate(json.loads(raw)["job"])
            except (json.JSONDecodeError, KeyError, TypeError, PydanticValidationError):
                logger.warning("丢弃无法恢复的死信条目", lane=lane.value, raw=raw)
                await self._client.lrem(dead, -1, raw)
                continue
            job.attempts = 0
            if not await self._revive(
                keys=[dead, self.stream_key(lane)], args=[raw, job.model_dump_json()]
            ):
                # 另一个进程已取走该条目
                continue
            await self._client.hincrby(self.stats_key(lane), "waiting", 1)
            await self._client.hincrby(self.stats_key(lane), "failed", -1)
            revived.append(job)
        logger.info("死信任务已重新入队", lane=lane.value, count=len(revived))
        return revived

    async def clean_completed(self) -> int:
        """清零 completed 计数（已确认的条目在确认时即已删除），返回清理数量。"""
        cleaned = 0
        for lane in Lane:
            previous = await self._client.hget(self.stats_key(lane), "completed")
            await self._client.hset(self.stats_key(lane), "completed", 0)
            cleaned += int(previous or 0)
        return cleaned

    async def close(self) -> None:
        # 客户端由运行时统一关闭
        return None
