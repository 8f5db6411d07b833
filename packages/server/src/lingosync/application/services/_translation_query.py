# packages/server/src/lingosync/application/services/_translation_query.py
"""翻译记录、统计、翻译记忆与队列状态的只读查询服务。"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lingosync.domain.lifecycle import parse_status
from lingosync.domain.resources import normalize_resource_type
from lingosync.domain.settings import normalize_language_code
from lingosync_core.types import (
    LaneStats,
    MemoryEntry,
    RecordPage,
    TenantStats,
    TranslationRecord,
)

if TYPE_CHECKING:
    from lingosync.infrastructure.uow import UowFactory
    from lingosync_core.interfaces import JobQueue

MAX_PAGE_SIZE = 200


class TranslationQueryService:
    def __init__(self, uow_factory: "UowFactory", queue: "JobQueue"):
        self._uow_factory = uow_factory
        self._queue = queue

    async def list_records(
        self,
        tenant_id: str,
        *,
        status: str | None = None,
        lang: str | None = None,
        resource_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> RecordPage:
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        offset = max(offset, 0)
        async with self._uow_factory() as uow:
            await uow.tenants.get(tenant_id)
            return await uow.records.list_by_tenant(
                tenant_id,
                status=parse_status(status) if status else None,
                target_lang=normalize_language_code(lang) if lang else None,
                resource_type=normalize_resource_type(resource_type) if resource_type else None,
                limit=limit,
                offset=offset,
            )

    async def get_record(self, tenant_id: str, record_id: str) -> TranslationRecord:
        async with self._uow_factory() as uow:
            return await uow.records.get(tenant_id, record_id)

    async def get_stats(self, tenant_id: str) -> TenantStats:
        async with self._uow_factory() as uow:
            await uow.tenants.get(tenant_id)
            return await uow.records.stats(tenant_id)

    async def translation_memory(
        self, tenant_id: str, *, lang: str | None = None, limit: int = 100
    ) -> list[MemoryEntry]:
        async with self._uow_factory() as uow:
            await uow.tenants.get(tenant_id)
            return await uow.records.translation_memory(
                tenant_id,
                target_lang=normalize_language_code(lang) if lang else None,
                limit=min(max(limit, 1), MAX_PAGE_SIZE),
            )

    async def queue_stats(self) -> dict[str, LaneStats]:
        return await self._queue.stats()
