"""
LingoSync 核心契约包。

包含跨层共享的异常、数据类型、接口协议与 UoW 抽象，
不依赖任何具体的基础设施实现。
"""
from .exceptions import (
    AuthError, ConfigurationError, DatabaseError, DuplicateRecordError,
    EngineNotFoundError, InvalidTransitionError, LingoSyncError, NotFoundError,
    ProviderError, RecordNotFoundError, SyncError, TenantNotFoundError,
    ValidationError,
)
from .interfaces import CacheHandler, CatalogSyncAdapter, JobQueue, SettingsStore
from .types import (
    JOB_LANES, BatchError, BatchSummary, EngineError, EngineResult, EngineSuccess,
    ImportSummary, Job, JobKind, JobReceipt, Lane, LaneStats, LanguageProgress,
    MaterializeResult, MemoryEntry, PushResult, RecordPage, RecordStatus,
    ResourceType, Tenant, TenantStats, TranslationRecord, UpsertResult, WebhookAck,
)
from .uow import ITenantRepository, ITranslationRecordRepository, IUnitOfWork

__all__ = [
    # from exceptions.py
    "LingoSyncError", "ConfigurationError", "EngineNotFoundError", "DatabaseError",
    "NotFoundError", "RecordNotFoundError", "TenantNotFoundError",
    "DuplicateRecordError", "ProviderError", "SyncError", "AuthError",
    "ValidationError", "InvalidTransitionError",
    # from interfaces.py
    "CacheHandler", "JobQueue", "CatalogSyncAdapter", "SettingsStore",
    # from types.py
    "RecordStatus", "ResourceType", "Lane", "JobKind", "JOB_LANES",
    "EngineSuccess", "EngineError", "EngineResult", "PushResult", "Tenant",
    "TranslationRecord", "UpsertResult", "RecordPage", "Job", "JobReceipt",
    "LaneStats", "BatchError", "BatchSummary", "MaterializeResult",
    "ImportSummary", "LanguageProgress", "TenantStats", "MemoryEntry", "WebhookAck",
    # from uow.py
    "IUnitOfWork", "ITranslationRecordRepository", "ITenantRepository",
]
