# packages/core/src/lingosync_core/uow.py
"""
定义了单元工作 (Unit of Work) 与仓库的抽象接口。
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Protocol

from .types import (
    MemoryEntry,
    RecordPage,
    RecordStatus,
    ResourceType,
    Tenant,
    TenantStats,
    TranslationRecord,
    UpsertResult,
)


class ITranslationRecordRepository(Protocol):
    """翻译记录仓库接口。所有方法都以租户为作用域。"""

    async def upsert(
        self,
        tenant_id: str,
        resource_type: ResourceType,
        resource_id: str,
        field: str,
        target_lang: str,
        source_text: str,
    ) -> UpsertResult: ...

    async def add(
        self,
        tenant_id: str,
        resource_type: ResourceType,
        resource_id: str,
        field: str,
        target_lang: str,
        source_text: str,
    ) -> TranslationRecord: ...

    async def get(
        self, tenant_id: str, record_id: str, *, for_update: bool = False
    ) -> TranslationRecord: ...

    async def list_by_tenant(
        self,
        tenant_id: str,
        *,
        status: RecordStatus | None = None,
        target_lang: str | None = None,
        resource_type: ResourceType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> RecordPage: ...

    async def update_status(
        self, tenant_id: str, record_id: str, status: RecordStatus, **fields: Any
    ) -> TranslationRecord: ...

    async def find_pending(
        self,
        tenant_id: str,
        limit: int,
        *,
        target_lang: str | None = None,
        include_failed: bool = True,
        now: datetime | None = None,
    ) -> list[TranslationRecord]: ...

    async def find_by_status(
        self,
        tenant_id: str,
        statuses: Iterable[RecordStatus],
        limit: int,
        *,
        target_lang: str | None = None,
    ) -> list[TranslationRecord]: ...

    async def find_completed_unsynced(
        self, tenant_id: str, record_ids: Iterable[str] | None = None
    ) -> list[TranslationRecord]: ...

    async def mark_resource_deleted(
        self, tenant_id: str, resource_type: ResourceType, resource_id: str
    ) -> int: ...

    async def existing_resource_ids(
        self, tenant_id: str, resource_type: ResourceType, resource_ids: Iterable[str]
    ) -> set[str]: ...

    async def stats(self, tenant_id: str) -> TenantStats: ...

    async def translation_memory(
        self, tenant_id: str, *, target_lang: str | None = None, limit: int = 100
    ) -> list[MemoryEntry]: ...


class ITenantRepository(Protocol):
    """租户仓库接口。"""

    async def get(self, tenant_id: str) -> Tenant: ...

    async def find_by_domain(self, shop_domain: str) -> Tenant | None: ...

    async def add(
        self,
        shop_domain: str,
        access_token: str | None = None,
        settings: dict[str, Any] | None = None,
    ) -> Tenant: ...

    async def update_settings(self, tenant_id: str, settings: dict[str, Any]) -> Tenant: ...

    async def set_active(self, tenant_id: str, is_active: bool) -> Tenant: ...

    async def list_active(self) -> list[Tenant]: ...


class IUnitOfWork(Protocol):
    """单元工作接口：一次事务内的所有仓库访问。"""

    records: ITranslationRecordRepository
    tenants: ITenantRepository

    async def __aenter__(self) -> "IUnitOfWork": ...

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...
