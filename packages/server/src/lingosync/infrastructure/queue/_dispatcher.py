# packages/server/src/lingosync/infrastructure/queue/_dispatcher.py
"""任务种类到异步处理器的路由表。两种队列实现共享同一个分发器。"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import structlog

from lingosync_core.exceptions import ConfigurationError
from lingosync_core.types import Job, JobKind

logger = structlog.get_logger(__name__)

JobHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class JobDispatcher:
    def __init__(self) -> None:
        self._handlers: dict[JobKind, JobHandler] = {}

    def register(self, kind: JobKind, handler: JobHandler) -> None:
        kind = JobKind(kind)
        if kind in self._handlers:
            logger.warning("任务处理器被覆盖", kind=kind.value)
        self._handlers[kind] = handler

    def registered(self) -> set[JobKind]:
        return set(self._handlers)

    async def dispatch(self, job: Job) -> Any:
        handler = self._handlers.get(job.kind)
        if handler is None:
            raise ConfigurationError(f"未注册任务处理器: {job.kind.value}")
        return await handler(job.payload)
