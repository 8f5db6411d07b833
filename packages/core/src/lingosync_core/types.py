# packages/core/src/lingosync_core/types.py
"""
本模块定义了 LingoSync 系统的核心数据类型。
这些类型是系统各层之间数据交换的契约。
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class RecordStatus(str, Enum):
    """表示翻译记录在其生命周期中的不同状态。"""
    PENDING = "pending"
    COMPLETED = "completed"
    SYNCED = "synced"
    FAILED = "failed"
    DELETED = "deleted"


class ResourceType(str, Enum):
    """可翻译的目录资源类型。"""
    PRODUCT = "product"
    PAGE = "page"
    BLOG = "blog"
    ARTICLE = "article"
    COLLECTION = "collection"
    THEME = "theme"


class Lane(str, Enum):
    """任务队列的三条独立通道。"""
    TRANSLATION = "translation"
    SYNC = "sync"
    WEBHOOK = "webhook"


class JobKind(str, Enum):
    """任务种类。每种任务固定投递到一条通道。"""
    AUTO_TRANSLATE = "auto_translate"
    BATCH_TRANSLATE = "batch_translate"
    CREATE_TRANSLATIONS = "create_translations"
    SYNC_TO_PLATFORM = "sync_to_platform"
    FETCH_FROM_PLATFORM = "fetch_from_platform"
    PROCESS_WEBHOOK = "process_webhook"

    @property
    def lane(self) -> Lane:
        return JOB_LANES[self]


JOB_LANES: dict[JobKind, Lane] = {
    JobKind.AUTO_TRANSLATE: Lane.TRANSLATION,
    JobKind.BATCH_TRANSLATE: Lane.TRANSLATION,
    JobKind.CREATE_TRANSLATIONS: Lane.TRANSLATION,
    JobKind.SYNC_TO_PLATFORM: Lane.SYNC,
    JobKind.FETCH_FROM_PLATFORM: Lane.SYNC,
    JobKind.PROCESS_WEBHOOK: Lane.WEBHOOK,
}


class EngineSuccess(BaseModel):
    """表示翻译引擎成功返回的结果。"""
    translated_text: str
    confidence: float = 1.0
    from_cache: bool = False


class EngineError(BaseModel):
    """表示翻译引擎执行失败。"""
    error_message: str
    is_retryable: bool


EngineResult = Union[EngineSuccess, EngineError]


class PushResult(BaseModel):
    """
    目录同步适配器推送一个资源分组的结果。

    `skipped` 列出平台未接受、因而没有推送的 (语言, 字段)。
    """
    ok: bool
    error: str | None = None
    skipped: set[tuple[str, str]] = Field(default_factory=set)


class Tenant(BaseModel):
    """租户（商户/店铺）的数据传输对象 (DTO)。"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    shop_domain: str
    access_token: str | None = None
    settings_json: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    created_at: datetime | None = None

    @classmethod
    def from_orm_model(cls, orm_obj: Any) -> "Tenant":
        """[防腐层] 从 SQLAlchemy ORM 实例安全地创建 DTO。"""
        return cls.model_validate(orm_obj, from_attributes=True)


class TranslationRecord(BaseModel):
    """翻译记录的 DTO：一个资源字段翻译到一种语言的工作单元。"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    resource_type: ResourceType
    resource_id: str
    field: str
    target_lang: str
    source_text: str
    status: RecordStatus
    translated_text: str | None = None
    confidence: float | None = None
    auto_translated: bool = False
    synced: bool = False
    synced_at: datetime | None = None
    attempt_count: int = 0
    last_error: str | None = None
    retry_after: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_orm_model(cls, orm_obj: Any) -> "TranslationRecord":
        """[防腐层] 从 SQLAlchemy ORM 实例安全地创建 DTO。"""
        return cls.model_validate(orm_obj, from_attributes=True)


UpsertOutcome = Literal["created", "updated", "unchanged"]


class UpsertResult(BaseModel):
    record: TranslationRecord
    outcome: UpsertOutcome


class RecordPage(BaseModel):
    """分页查询结果。"""
    items: list[TranslationRecord]
    total: int
    limit: int
    offset: int


def _new_job_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Job(BaseModel):
    """
    队列中的一个短暂工作单元。
    不做持久化；翻译记录才是唯一事实来源，丢失的任务可以通过重新扫描记录派生。
    """
    kind: JobKind
    payload: dict[str, Any] = Field(default_factory=dict)
    id: str = Field(default_factory=_new_job_id)
    attempts: int = 0
    max_attempts: int = 3
    backoff_base: float = 2.0
    enqueued_at: datetime = Field(default_factory=_utcnow)

    @property
    def lane(self) -> Lane:
        return self.kind.lane

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def backoff_delay(self) -> float:
        """第 N 次失败后的退避秒数：base * 2^(N-1)。"""
        return self.backoff_base * (2 ** max(self.attempts - 1, 0))


class JobReceipt(BaseModel):
    """入队回执。内联模式下 `result` 携带处理器的返回值。"""
    job_id: str
    lane: Lane
    kind: JobKind
    mode: Literal["redis", "inline"]
    result: Any = None


class LaneStats(BaseModel):
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0


class BatchError(BaseModel):
    ref: str
    error: str


class BatchSummary(BaseModel):
    """批量操作的汇总结果，部分失败不会抛出异常。"""
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[BatchError] = Field(default_factory=list)


class MaterializeResult(BaseModel):
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    records: list[TranslationRecord] = Field(default_factory=list)


class ImportSummary(BaseModel):
    fetched: int = 0
    imported: int = 0
    skipped: int = 0
    created: int = 0


class LanguageProgress(BaseModel):
    total: int = 0
    completed: int = 0
    progress: int = 0


class TenantStats(BaseModel):
    total: int = 0
    pending: int = 0
    completed: int = 0
    synced: int = 0
    failed: int = 0
    deleted: int = 0
    auto_translated: int = 0
    by_language: dict[str, LanguageProgress] = Field(default_factory=dict)


class MemoryEntry(BaseModel):
    """翻译记忆：已完成的原文/译文对及其出现次数。"""
    source_text: str
    translated_text: str
    target_lang: str
    usage_count: int


class WebhookAck(BaseModel):
    """Webhook 的异步确认。"""
    job_id: str
    tenant_id: str
    topic: str
