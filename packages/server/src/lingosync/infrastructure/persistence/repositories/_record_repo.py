# packages/server/src/lingosync/infrastructure/persistence/repositories/_record_repo.py
"""翻译记录仓库的 SQLAlchemy 实现。"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError

from lingosync.domain.lifecycle import ensure_transition
from lingosync.infrastructure.db._schema import LsTranslationRecord, utcnow
from lingosync_core.exceptions import (
    DuplicateRecordError,
    RecordNotFoundError,
    ValidationError,
)
from lingosync_core.types import (
    LanguageProgress,
    MemoryEntry,
    RecordPage,
    RecordStatus,
    ResourceType,
    TenantStats,
    TranslationRecord,
    UpsertResult,
)

from ._base_repo import BaseRepository

_R = LsTranslationRecord

# update_status 允许写入的字段
UPDATABLE_FIELDS = frozenset(
    {
        "translated_text",
        "confidence",
        "auto_translated",
        "attempt_count",
        "last_error",
        "retry_after",
    }
)

_DONE_STATUSES = (RecordStatus.COMPLETED.value, RecordStatus.SYNCED.value)


class SqlAlchemyTranslationRecordRepository(BaseRepository):
    """翻译记录仓库实现。所有查询与写入均以 tenant_id 为作用域。"""

    def _unit_stmt(
        self,
        tenant_id: str,
        resource_type: ResourceType,
        resource_id: str,
        field: str,
        target_lang: str,
    ):
        return select(_R).where(
            _R.tenant_id == tenant_id,
            _R.resource_type == ResourceType(resource_type).value,
            _R.resource_id == resource_id,
            _R.field == field,
            _R.target_lang == target_lang,
        )

    async def _insert(self, row: LsTranslationRecord) -> bool:
        """在保存点内插入；违反唯一约束时回滚保存点并返回 False。"""
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            return False
        return True

    async def upsert(
        self,
        tenant_id: str,
        resource_type: ResourceType,
        resource_id: str,
        field: str,
        target_lang: str,
        source_text: str,
    ) -> UpsertResult:
        """
        按翻译单元 (tenant, resource_type, resource_id, field, lang) 创建或更新记录。

        - 不存在：创建 pending 记录。
        - 源文本变化：覆盖源文本，强制回到 pending 并清空译文（已删除的记录随之复活）。
        - 源文本未变：幂等空操作，已删除的记录保持 deleted。
        """
        stmt = self._unit_stmt(tenant_id, resource_type, resource_id, field, target_lang)
        existing = (await self._session.execute(stmt)).scalar_one_or_none()

        if existing is None:
            row = _R(
                tenant_id=tenant_id,
                resource_type=ResourceType(resource_type).value,
                resource_id=resource_id,
                field=field,
                target_lang=target_lang,
                source_text=source_text,
            )
            if await self._insert(row):
                return UpsertResult(
                    record=TranslationRecord.from_orm_model(row), outcome="created"
                )
            # 并发写入者抢先插入，转入"已存在"分支
            existing = (await self._session.execute(stmt)).scalar_one()

        # 已删除记录仅在源文本变化时复活
        if existing.source_text == source_text:
            return UpsertResult(
                record=TranslationRecord.from_orm_model(existing), outcome="unchanged"
            )

        existing.source_text = source_text
        existing.status = RecordStatus.PENDING.value
        existing.translated_text = None
        existing.confidence = None
        existing.auto_translated = False
        existing.synced = False
        existing.synced_at = None
        existing.attempt_count = 0
        existing.last_error = None
        existing.retry_after = None
        existing.updated_at = utcnow()
        await self._session.flush()
        return UpsertResult(
            record=TranslationRecord.from_orm_model(existing), outcome="updated"
        )

    async def add(
        self,
        tenant_id: str,
        resource_type: ResourceType,
        resource_id: str,
        field: str,
        target_lang: str,
        source_text: str,
    ) -> TranslationRecord:
        """非 upsert 的创建路径；重复的翻译单元抛出 DuplicateRecordError。"""
        row = _R(
            tenant_id=tenant_id,
            resource_type=ResourceType(resource_type).value,
            resource_id=resource_id,
            field=field,
            target_lang=target_lang,
            source_text=source_text,
        )
        if not await self._insert(row):
            raise DuplicateRecordError(
                f"翻译单元已存在: {row.resource_type}:{resource_id}/{field}@{target_lang}"
            )
        return TranslationRecord.from_orm_model(row)

    async def _get_row(
        self, tenant_id: str, record_id: str, *, for_update: bool = False
    ) -> LsTranslationRecord:
        stmt = select(_R).where(_R.id == record_id, _R.tenant_id == tenant_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            raise RecordNotFoundError(f"翻译记录未找到: {record_id}")
        return row

    async def get(
        self, tenant_id: str, record_id: str, *, for_update: bool = False
    ) -> TranslationRecord:
        row = await self._get_row(tenant_id, record_id, for_update=for_update)
        return TranslationRecord.from_orm_model(row)

    async def get_many(
        self, tenant_id: str, record_ids: Iterable[str]
    ) -> list[TranslationRecord]:
        ids = list(record_ids)
        if not ids:
            return []
        stmt = select(_R).where(_R.tenant_id == tenant_id, _R.id.in_(ids))
        rows = (await self._session.execute(stmt)).scalars().all()
        return [TranslationRecord.from_orm_model(r) for r in rows]

    async def list_by_tenant(
        self,
        tenant_id: str,
        *,
        status: RecordStatus | None = None,
        target_lang: str | None = None,
        resource_type: ResourceType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> RecordPage:
        """按创建时间倒序分页列出记录。"""
        conditions = [_R.tenant_id == tenant_id]
        if status is not None:
            conditions.append(_R.status == RecordStatus(status).value)
        if target_lang:
            conditions.append(_R.target_lang == target_lang)
        if resource_type is not None:
            conditions.append(_R.resource_type == ResourceType(resource_type).value)

        total = (
            await self._session.execute(select(func.count()).select_from(_R).where(*conditions))
        ).scalar_one()
        stmt = (
            select(_R)
            .where(*conditions)
            .order_by(_R.created_at.desc(), _R.id.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return RecordPage(
            items=[TranslationRecord.from_orm_model(r) for r in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def update_status(
        self, tenant_id: str, record_id: str, status: RecordStatus, **fields: Any
    ) -> TranslationRecord:
        """
        原子的单行部分更新。
        迁移必须满足状态机；仅允许写入 UPDATABLE_FIELDS 中的字段。
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"不允许更新的字段: {sorted(unknown)}")

        target = RecordStatus(status)
        row = await self._get_row(tenant_id, record_id, for_update=True)
        ensure_transition(RecordStatus(row.status), target)

        for name, value in fields.items():
            setattr(row, name, value)
        row.status = target.value
        now = utcnow()
        if target is RecordStatus.SYNCED:
            row.synced = True
            row.synced_at = now
        elif target is RecordStatus.COMPLETED:
            # 回到 completed（含人工编辑）意味着需要重新同步
            row.synced = False
        row.updated_at = now
        await self._session.flush()
        return TranslationRecord.from_orm_model(row)

    async def find_pending(
        self,
        tenant_id: str,
        limit: int,
        *,
        target_lang: str | None = None,
        include_failed: bool = True,
        now: datetime | None = None,
    ) -> list[TranslationRecord]:
        """pending 记录，以及冷却期已过的 failed 记录，按创建时间正序。"""
        now = now or utcnow()
        status_cond = _R.status == RecordStatus.PENDING.value
        if include_failed:
            status_cond = or_(
                status_cond,
                and_(
                    _R.status == RecordStatus.FAILED.value,
                    or_(_R.retry_after.is_(None), _R.retry_after <= now),
                ),
            )
        stmt = select(_R).where(_R.tenant_id == tenant_id, status_cond)
        if target_lang:
            stmt = stmt.where(_R.target_lang == target_lang)
        stmt = stmt.order_by(_R.created_at, _R.id).limit(limit)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [TranslationRecord.from_orm_model(r) for r in rows]

    async def find_by_status(
        self,
        tenant_id: str,
        statuses: Iterable[RecordStatus],
        limit: int,
        *,
        target_lang: str | None = None,
    ) -> list[TranslationRecord]:
        values = [RecordStatus(s).value for s in statuses]
        stmt = select(_R).where(_R.tenant_id == tenant_id, _R.status.in_(values))
        if target_lang:
            stmt = stmt.where(_R.target_lang == target_lang)
        stmt = stmt.order_by(_R.created_at, _R.id).limit(limit)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [TranslationRecord.from_orm_model(r) for r in rows]

    async def find_completed_unsynced(
        self, tenant_id: str, record_ids: Iterable[str] | None = None
    ) -> list[TranslationRecord]:
        stmt = select(_R).where(
            _R.tenant_id == tenant_id,
            _R.status == RecordStatus.COMPLETED.value,
            _R.synced.is_(False),
        )
        if record_ids is not None:
            ids = list(record_ids)
            if not ids:
                return []
            stmt = stmt.where(_R.id.in_(ids))
        stmt = stmt.order_by(_R.resource_type, _R.resource_id, _R.created_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [TranslationRecord.from_orm_model(r) for r in rows]

    async def mark_resource_deleted(
        self, tenant_id: str, resource_type: ResourceType, resource_id: str
    ) -> int:
        """将资源的全部非删除记录软删除，返回受影响行数。"""
        stmt = (
            update(_R)
            .where(
                _R.tenant_id == tenant_id,
                _R.resource_type == ResourceType(resource_type).value,
                _R.resource_id == resource_id,
                _R.status != RecordStatus.DELETED.value,
            )
            .values(status=RecordStatus.DELETED.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def existing_resource_ids(
        self, tenant_id: str, resource_type: ResourceType, resource_ids: Iterable[str]
    ) -> set[str]:
        ids = list(resource_ids)
        if not ids:
            return set()
        stmt = (
            select(_R.resource_id)
            .where(
                _R.tenant_id == tenant_id,
                _R.resource_type == ResourceType(resource_type).value,
                _R.resource_id.in_(ids),
            )
            .distinct()
        )
        return set((await self._session.execute(stmt)).scalars().all())

    async def stats(self, tenant_id: str) -> TenantStats:
        """
        聚合统计。total 不含 deleted；语言进度中 completed 计入 completed 与 synced，
        progress = round(completed / total * 100)。
        """
        stmt = (
            select(_R.status, _R.target_lang, func.count())
            .where(_R.tenant_id == tenant_id)
            .group_by(_R.status, _R.target_lang)
        )
        stats = TenantStats()
        for status, lang, count in (await self._session.execute(stmt)).all():
            setattr(stats, status, getattr(stats, status) + count)
            if status == RecordStatus.DELETED.value:
                continue
            stats.total += count
            progress = stats.by_language.setdefault(lang, LanguageProgress())
            progress.total += count
            if status in _DONE_STATUSES:
                progress.completed += count

        for progress in stats.by_language.values():
            progress.progress = (
                round(progress.completed / progress.total * 100) if progress.total else 0
            )

        auto_stmt = select(func.count()).select_from(_R).where(
            _R.tenant_id == tenant_id,
            _R.auto_translated.is_(True),
            _R.status != RecordStatus.DELETED.value,
        )
        stats.auto_translated = (await self._session.execute(auto_stmt)).scalar_one()
        return stats

    async def translation_memory(
        self, tenant_id: str, *, target_lang: str | None = None, limit: int = 100
    ) -> list[MemoryEntry]:
        usage = func.count().label("usage_count")
        conditions = [
            _R.tenant_id == tenant_id,
            _R.status.in_(_DONE_STATUSES),
            _R.translated_text.is_not(None),
        ]
        if target_lang:
            conditions.append(_R.target_lang == target_lang)
        stmt = (
            select(_R.source_text, _R.translated_text, _R.target_lang, usage)
            .where(*conditions)
            .group_by(_R.source_text, _R.translated_text, _R.target_lang)
            .order_by(usage.desc(), _R.source_text)
            .limit(limit)
        )
        return [
            MemoryEntry(
                source_text=src,
                translated_text=dst,
                target_lang=lang,
                usage_count=count,
            )
            for src, dst, lang, count in (await self._session.execute(stmt)).all()
        ]
