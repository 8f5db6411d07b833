# packages/server/src/lingosync/application/job_handlers.py
"""
把编排器操作注册为各任务种类的处理器。

处理器必须幂等：所有状态变更都经由 upsert / update_status，重复投递不会破坏记录状态。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from lingosync_core.exceptions import LingoSyncError, SyncError
from lingosync_core.types import JobKind

if TYPE_CHECKING:
    from lingosync.infrastructure.queue import JobDispatcher

    from .orchestrator import Orchestrator

logger = structlog.get_logger(__name__)


class JobHandlers:
    def __init__(self, orchestrator: "Orchestrator"):
        self._orchestrator = orchestrator

    def register(self, dispatcher: "JobDispatcher") -> None:
        dispatcher.register(JobKind.AUTO_TRANSLATE, self.auto_translate)
        dispatcher.register(JobKind.BATCH_TRANSLATE, self.batch_translate)
        dispatcher.register(JobKind.CREATE_TRANSLATIONS, self.create_translations)
        dispatcher.register(JobKind.SYNC_TO_PLATFORM, self.sync_to_platform)
        dispatcher.register(JobKind.FETCH_FROM_PLATFORM, self.fetch_from_platform)
        dispatcher.register(JobKind.PROCESS_WEBHOOK, self.process_webhook)

    async def auto_translate(self, payload: dict[str, Any]) -> dict[str, Any]:
        record = await self._orchestrator.auto_translate_one(
            payload["tenant_id"], payload["record_id"]
        )
        return {"record_id": record.id, "status": record.status.value}

    async def batch_translate(self, payload: dict[str, Any]) -> dict[str, Any]:
        tenant_id = payload["tenant_id"]
        summary = await self._orchestrator.auto_translate_batch(
            tenant_id,
            status=payload.get("status", "pending"),
            limit=payload.get("limit"),
            lang=payload.get("lang"),
        )
        if summary.succeeded:
            try:
                await self._orchestrator.enqueue_sync_if_enabled(tenant_id)
            except LingoSyncError as e:
                # 同步失败不影响本批翻译结果；completed 记录会被下一次同步拾取
                logger.warning("批量翻译后的同步未成功", tenant_id=tenant_id, error=str(e))
        return summary.model_dump()

    async def create_translations(self, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self._orchestrator.materialize_for_resource(
            payload["tenant_id"],
            payload["resource"],
            payload["resource_type"],
            payload.get("resource_id"),
            payload.get("langs"),
        )
        return result.model_dump(exclude={"records"})

    async def sync_to_platform(self, payload: dict[str, Any]) -> dict[str, Any]:
        """部分失败返回汇总；所有分组都失败时抛出 SyncError 交给队列退避重试。"""
        summary = await self._orchestrator.sync_batch(
            payload["tenant_id"], payload.get("record_ids")
        )
        if summary.failed and not summary.succeeded:
            errors = "; ".join(f"{e.ref}: {e.error}" for e in summary.errors)
            raise SyncError(f"全部资源分组推送失败: {errors}")
        return summary.model_dump()

    async def fetch_from_platform(self, payload: dict[str, Any]) -> dict[str, Any]:
        summary = await self._orchestrator.import_from_platform(
            payload["tenant_id"], payload["resource_type"], payload.get("limit")
        )
        return summary.model_dump()

    async def process_webhook(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._orchestrator.process_webhook(
            payload["tenant_id"], payload["topic"], payload.get("resource") or {}
        )
