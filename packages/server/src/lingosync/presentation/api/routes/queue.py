# packages/server/src/lingosync/presentation/api/routes/queue.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from lingosync.application import TranslationQueryService
from lingosync_core.types import LaneStats

from ..dependencies import get_query_service

router = APIRouter()


@router.get("/stats", response_model=dict[str, LaneStats])
async def queue_stats(
    queries: TranslationQueryService = Depends(get_query_service),
) -> dict[str, LaneStats]:
    return await queries.queue_stats()
