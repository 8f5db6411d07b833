# packages/server/src/lingosync/infrastructure/queue/_inline.py
"""
内联（降级）任务队列。

没有可用 broker 时使用：`enqueue` 立即在当前进程内执行处理器并返回其结果。
重试语义退化为单次立即执行；失败会原样抛给调用方，同时记入进程内死信。
"""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime, timezone
from typing import Any

import structlog

from lingosync_core.types import Job, JobKind, JobReceipt, Lane, LaneStats

from ._dispatcher import JobDispatcher

logger = structlog.get_logger(__name__)

DEAD_LETTER_LIMIT = 1000


class InlineJobQueue:
    mode = "inline"

    def __init__(
        self,
        dispatcher: JobDispatcher,
        *,
        max_attempts: int = 3,
        backoff_base: float = 2.0,
        job_timeout: float | None = None,
    ):
        self._dispatcher = dispatcher
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._job_timeout = job_timeout
        self._stats: dict[Lane, LaneStats] = {lane: LaneStats() for lane in Lane}
        self._dead: dict[Lane, deque[dict[str, Any]]] = {
            lane: deque(maxlen=DEAD_LETTER_LIMIT) for lane in Lane
        }

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
            max_attempts=max_attempts or self._max_attempts,
            backoff_base=backoff_base or self._backoff_base,
        )
        result = await self._run(job)
        return JobReceipt(
            job_id=job.id, lane=job.lane, kind=job.kind, mode="inline", result=result
        )

    async def _run(self, job: Job) -> Any:
        stats = self._stats[job.lane]
        job.attempts += 1
        stats.active += 1
        log = logger.bind(
            job_id=job.id,
            lane=job.lane.value,
            kind=job.kind.value,
            attempt=job.attempts,
            tenant_id=job.payload.get("tenant_id"),
        )
        try:
            if self._job_timeout:
                result = await asyncio.wait_for(
                    self._dispatcher.dispatch(job), timeout=self._job_timeout
                )
            else:
                result = await self._dispatcher.dispatch(job)
        except Exception as e:
            stats.failed += 1
            self._dead[job.lane].appendleft(
                {
                    "job": job.model_dump(mode="json"),
                    "error": str(e) or type(e).__name__,
                    "failed_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            log.error("内联任务执行失败", error=str(e), record_id=job.payload.get("record_id"))
            raise
        else:
            stats.completed += 1
            return result
        finally:
            stats.active -= 1

    async def drain_once(self, lane: Lane, count: int) -> int:
        # 内联模式下任务在入队时已执行完毕
        return 0

    async def reclaim_stale(self, lane: Lane) -> int:
        return 0

    async def stats(self) -> dict[str, LaneStats]:
        return {lane.value: s.model_copy() for lane, s in self._stats.items()}

    async def dead_jobs(self, lane: Lane, limit: int = 50) -> list[dict[str, Any]]:
        return list(self._dead[Lane(lane)])[:limit]

    async def requeue_dead(self, lane: Lane, limit: int = 50) -> list[Job]:
        """重新执行死信任务；再次失败的任务回到死信，不向上抛出。"""
        lane = Lane(lane)
        revived: list[Job] = []
        for _ in range(min(limit, len(self._dead[lane]))):
            entry = self._dead[lane].pop()
            job = Job.model_validate(entry["job"])
            job.attempts = 0
            self._stats[lane].failed = max(self._stats[lane].failed - 1, 0)
            revived.append(job)
            try:
                await self._run(job)
            except Exception:
                # _run 已记录日志并写回死信
                continue
        return revived

    async def clean_completed(self) -> int:
        cleaned = 0
        for s in self._stats.values():
            cleaned += s.completed
            s.completed = 0
        return cleaned

    async def close(self) -> None:
        return None
