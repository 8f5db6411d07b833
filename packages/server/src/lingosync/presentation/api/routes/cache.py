# packages/server/src/lingosync/presentation/api/routes/cache.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from lingosync.application import Orchestrator

from ..dependencies import get_orchestrator

router = APIRouter()


@router.delete("/translations")
async def clear_translation_cache(
    source_lang: str = Query(..., min_length=1),
    target_lang: str = Query(..., min_length=1),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, object]:
    deleted = await orchestrator.clear_translation_cache(source_lang, target_lang)
    return {"source_lang": source_lang, "target_lang": target_lang, "deleted": deleted}
