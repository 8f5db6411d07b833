"""
应用层：编排器、任务处理器与应用服务。
"""

from .job_handlers import JobHandlers
from .orchestrator import Orchestrator
from .services import (
    TranslationCache,
    TranslationQueryService,
    WebhookIngestor,
)

__all__ = [
    "JobHandlers",
    "Orchestrator",
    "TranslationCache",
    "TranslationQueryService",
    "WebhookIngestor",
]
