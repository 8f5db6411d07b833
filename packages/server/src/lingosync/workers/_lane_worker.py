# packages/server/src/lingosync/workers/_lane_worker.py
"""
单通道 Worker：每轮提升到期重试、读取至多 `concurrency` 个任务并发处理，
并周期性接管崩溃消费者遗留的投递。
"""

from __future__ import annotations

import asyncio
import signal
import time
from typing import TYPE_CHECKING, Any

import structlog

from lingosync_core.types import Lane

if TYPE_CHECKING:
    from lingosync.config import LingoSyncConfig
    from lingosync_core.interfaces import JobQueue

logger = structlog.get_logger(__name__)


def install_signal_handlers(shutdown_event: asyncio.Event) -> None:
    """SIGINT/SIGTERM 触发优雅关闭。"""

    def _signal_handler(*args: Any) -> None:
        logger.warning("收到停机信号，正在准备优雅关闭...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)


class LaneWorker:
    def __init__(self, config: "LingoSyncConfig", queue: "JobQueue", lane: Lane):
        self._config = config
        self._queue = queue
        self.lane = Lane(lane)
        self.concurrency = int(getattr(config.queue, f"{self.lane.value}_concurrency"))
        self._last_reclaim: float | None = None

    async def run_once(self) -> int:
        """执行一轮处理，返回本轮处理的任务数。错误只记录，不终止 Worker。"""
        log = logger.bind(lane=self.lane.value)
        processed = 0
        try:
            now = time.monotonic()
            if (
                self._last_reclaim is None
                or now - self._last_reclaim >= self._config.worker.reclaim_interval
            ):
                self._last_reclaim = now
                processed += await self._queue.reclaim_stale(self.lane)
            processed += await self._queue.drain_once(self.lane, self.concurrency)
        except Exception as e:
            log.error("处理通道任务时发生未知错误。", error=str(e), exc_info=True)
            return processed

        if processed:
            log.info("本轮任务处理完成。", processed=processed)
        else:
            log.debug("本轮未发现需要处理的任务。")
        return processed

    async def run_loop(self, shutdown_event: asyncio.Event) -> None:
        """Worker 的主循环。处理到任务时立即进入下一轮，否则按轮询间隔等待。"""
        logger.info("通道 Worker 已启动，正在轮询任务...", lane=self.lane.value)
        try:
            while not shutdown_event.is_set():
                if await self.run_once():
                    continue
                try:
                    await asyncio.wait_for(
                        shutdown_event.wait(), timeout=self._config.worker.poll_interval
                    )
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.info("通道 Worker 循环被取消。", lane=self.lane.value)
        finally:
            logger.info("通道 Worker 已安全关闭。", lane=self.lane.value)
