"""
应用服务层。

每个服务对应一组相关的业务用例；编排器在 `lingosync.application.orchestrator` 中。
"""

from ._translation_cache import TranslationCache
from ._translation_query import TranslationQueryService
from ._webhook_ingest import (
    WebhookIngestor,
    compute_signature,
    verify_signature,
)

__all__ = [
    "TranslationCache",
    "TranslationQueryService",
    "WebhookIngestor",
    "compute_signature",
    "verify_signature",
]
