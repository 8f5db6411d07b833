# packages/server/src/lingosync/presentation/api/routes/records.py
"""租户作用域内的翻译记录、统计与批量操作。"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from lingosync.application import Orchestrator, TranslationQueryService
from lingosync_core.types import (
    JobReceipt,
    MemoryEntry,
    RecordPage,
    TenantStats,
    TranslationRecord,
)

from ..dependencies import get_orchestrator, get_query_service
from ..schemas import BulkTranslateRequest, ImportRequest, RecordCreate, TranslationEdit

router = APIRouter()


@router.get("/{tenant_id}/records", response_model=RecordPage)
async def list_records(
    tenant_id: str,
    status_filter: str | None = Query(default=None, alias="status"),
    lang: str | None = None,
    resource_type: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    queries: TranslationQueryService = Depends(get_query_service),
) -> RecordPage:
    return await queries.list_records(
        tenant_id,
        status=status_filter,
        lang=lang,
        resource_type=resource_type,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/{tenant_id}/records",
    status_code=status.HTTP_201_CREATED,
    response_model=TranslationRecord,
)
async def create_record(
    tenant_id: str,
    body: RecordCreate,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> TranslationRecord:
    return await orchestrator.create_record(
        tenant_id,
        body.resource_type,
        body.resource_id,
        body.field,
        body.target_lang,
        body.source_text,
    )


@router.get("/{tenant_id}/records/{record_id}", response_model=TranslationRecord)
async def get_record(
    tenant_id: str,
    record_id: str,
    queries: TranslationQueryService = Depends(get_query_service),
) -> TranslationRecord:
    return await queries.get_record(tenant_id, record_id)


@router.put("/{tenant_id}/records/{record_id}", response_model=TranslationRecord)
async def edit_translation(
    tenant_id: str,
    record_id: str,
    body: TranslationEdit,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> TranslationRecord:
    return await orchestrator.edit_translation(tenant_id, record_id, body.translated_text)


@router.post(
    "/{tenant_id}/records/{record_id}/auto-translate",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=JobReceipt,
)
async def auto_translate_record(
    tenant_id: str,
    record_id: str,
    queries: TranslationQueryService = Depends(get_query_service),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> JobReceipt:
    # 先校验记录归属，避免为其他租户的记录入队
    await queries.get_record(tenant_id, record_id)
    return await orchestrator.enqueue_auto_translate(tenant_id, record_id)


@router.get("/{tenant_id}/stats", response_model=TenantStats)
async def get_stats(
    tenant_id: str,
    queries: TranslationQueryService = Depends(get_query_service),
) -> TenantStats:
    return await queries.get_stats(tenant_id)


@router.get("/{tenant_id}/memory", response_model=list[MemoryEntry])
async def translation_memory(
    tenant_id: str,
    lang: str | None = None,
    limit: int = Query(default=100, ge=1, le=200),
    queries: TranslationQueryService = Depends(get_query_service),
) -> list[MemoryEntry]:
    return await queries.translation_memory(tenant_id, lang=lang, limit=limit)


@router.post("/{tenant_id}/bulk/auto-translate", status_code=status.HTTP_202_ACCEPTED)
async def bulk_auto_translate(
    tenant_id: str,
    body: BulkTranslateRequest | None = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    body = body or BulkTranslateRequest()
    return await orchestrator.enqueue_bulk_translate(
        tenant_id, limit=body.limit, status=body.status
    )


@router.post("/{tenant_id}/bulk/sync", status_code=status.HTTP_202_ACCEPTED)
async def bulk_sync(
    tenant_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return await orchestrator.enqueue_bulk_sync(tenant_id)


@router.post(
    "/{tenant_id}/import",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=JobReceipt,
)
async def import_resources(
    tenant_id: str,
    body: ImportRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> JobReceipt:
    return await orchestrator.enqueue_import(tenant_id, body.resource_type, body.limit)
