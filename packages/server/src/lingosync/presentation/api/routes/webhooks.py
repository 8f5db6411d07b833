# packages/server/src/lingosync/presentation/api/routes/webhooks.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from lingosync.application import WebhookIngestor
from lingosync_core.types import WebhookAck

from ..dependencies import get_webhook_ingestor

router = APIRouter()


@router.post("", status_code=status.HTTP_202_ACCEPTED, response_model=WebhookAck)
async def receive_webhook(
    request: Request,
    ingestor: WebhookIngestor = Depends(get_webhook_ingestor),
) -> WebhookAck:
    """签名基于原始请求字节计算，因此这里必须读取未经解析的请求体。"""
    raw_body = await request.body()
    return await ingestor.ingest(raw_body, request.headers)
