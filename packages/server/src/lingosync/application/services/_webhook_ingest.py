# packages/server/src/lingosync/application/services/_webhook_ingest.py
"""
Webhook 接入：验签 → 解析 → 解析租户 → 入队。

签名是对原始请求字节计算的 HMAC-SHA256（base64 编码），使用常量时间比较。
任何解析或租户查询都发生在验签通过之后。
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from typing import TYPE_CHECKING, Any, Mapping

import structlog

from lingosync.domain.resources import parse_topic
from lingosync_core.exceptions import AuthError, TenantNotFoundError, ValidationError
from lingosync_core.types import JobKind, WebhookAck

if TYPE_CHECKING:
    from pydantic import SecretStr

    from lingosync.infrastructure.uow import UowFactory
    from lingosync_core.interfaces import JobQueue

logger = structlog.get_logger(__name__)

HMAC_HEADER = "x-shopify-hmac-sha256"
TOPIC_HEADER = "x-shopify-topic"
SHOP_HEADER = "x-shopify-shop-domain"
REQUIRED_HEADERS = (HMAC_HEADER, TOPIC_HEADER, SHOP_HEADER)


def compute_signature(raw_body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(raw_body: bytes, signature: str | None, secret: str | None) -> bool:
    """常量时间比较；签名或密钥缺失时返回 False。"""
    if not signature or not secret:
        return False
    expected = compute_signature(raw_body, secret)
    signature = signature.strip()
    if not signature.isascii():
        return False
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii"))


class WebhookIngestor:
    def __init__(
        self,
        uow_factory: "UowFactory",
        queue: "JobQueue",
        shared_secret: "SecretStr | None",
    ):
        self._uow_factory = uow_factory
        self._queue = queue
        self._secret = shared_secret.get_secret_value() if shared_secret else None

    async def ingest(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookAck:
        normalized = {k.lower(): v for k, v in headers.items()}
        missing = [h for h in REQUIRED_HEADERS if not normalized.get(h)]
        if missing:
            logger.warning("Webhook 缺少必需的请求头，已拒绝", missing=missing)
            raise AuthError(f"缺少 Webhook 请求头: {', '.join(missing)}")

        if self._secret is None:
            logger.error("未配置 Webhook 共享密钥，拒绝所有 Webhook")
            raise AuthError("Webhook 共享密钥未配置")
        if not verify_signature(raw_body, normalized[HMAC_HEADER], self._secret):
            logger.warning("Webhook 签名不匹配，已拒绝", shop=normalized[SHOP_HEADER])
            raise AuthError("Webhook 签名无效")

        topic = normalized[TOPIC_HEADER].strip().lower()
        parse_topic(topic)
        try:
            resource: Any = json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError(f"Webhook 请求体不是合法的 JSON: {e}") from e
        if not isinstance(resource, dict):
            raise ValidationError("Webhook 请求体必须是 JSON 对象")

        shop_domain = normalized[SHOP_HEADER]
        async with self._uow_factory() as uow:
            tenant = await uow.tenants.find_by_domain(shop_domain)
        if tenant is None or not tenant.is_active:
            logger.warning("Webhook 来源店铺未注册或已停用", shop=shop_domain, topic=topic)
            raise TenantNotFoundError(f"未找到店铺对应的租户: {shop_domain}")

        receipt = await self._queue.enqueue(
            JobKind.PROCESS_WEBHOOK,
            {"tenant_id": tenant.id, "topic": topic, "resource": resource},
        )
        logger.info(
            "Webhook 已接收并入队",
            tenant_id=tenant.id,
            topic=topic,
            job_id=receipt.job_id,
            mode=receipt.mode,
        )
        return WebhookAck(job_id=receipt.job_id, tenant_id=tenant.id, topic=topic)
