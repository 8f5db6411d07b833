# packages/server/src/lingosync/application/orchestrator.py
"""
翻译编排器。

把目录资源物化为翻译记录，经由缓存与翻译引擎把记录从 pending 推进到 completed，
再经由目录同步适配器把 completed 推进到 synced，并提供带部分失败汇总的批量操作。

约束：
- 调用外部服务（引擎、平台）期间不持有 UoW；状态写入各自使用短事务。
- 入队前必须先关闭当前 UoW（内联队列会在 `enqueue` 内直接执行处理器）。
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import structlog

from lingosync.domain.lifecycle import parse_status
from lingosync.domain.resources import (
    WEBHOOK_ACTIONS,
    extract_translatable_fields,
    normalize_resource_type,
    parse_topic,
    resource_ref,
)
from lingosync.domain.settings import normalize_language_code
from lingosync_core.exceptions import (
    LingoSyncError,
    ProviderError,
    SyncError,
    TenantNotFoundError,
    ValidationError,
)
from lingosync_core.types import (
    BatchError,
    BatchSummary,
    EngineError,
    EngineSuccess,
    ImportSummary,
    JobKind,
    JobReceipt,
    MaterializeResult,
    RecordStatus,
    ResourceType,
    Tenant,
    TranslationRecord,
)

if TYPE_CHECKING:
    from lingosync.adapters.engines.base import BaseTranslationEngine
    from lingosync.config import LingoSyncConfig
    from lingosync.infrastructure.persistence import SqlAlchemySettingsStore
    from lingosync.infrastructure.uow import UowFactory
    from lingosync_core.interfaces import CatalogSyncAdapter, JobQueue

    from .services import TranslationCache

logger = structlog.get_logger(__name__)

_DONE = (RecordStatus.COMPLETED, RecordStatus.SYNCED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Orchestrator:
    def __init__(
        self,
        uow_factory: "UowFactory",
        cache: "TranslationCache",
        engine: "BaseTranslationEngine[Any]",
        catalog: "CatalogSyncAdapter",
        queue: "JobQueue",
        settings_store: "SqlAlchemySettingsStore",
        config: "LingoSyncConfig",
    ):
        self._uow_factory = uow_factory
        self._cache = cache
        self._engine = engine
        self._catalog = catalog
        self._queue = queue
        self._settings = settings_store
        self._config = config
        self._opts = config.orchestrator

    async def initialize(self) -> None:
        await self._engine.initialize()

    async def close(self) -> None:
        await self._engine.close()
        await self._catalog.close()

    async def _get_active_tenant(self, tenant_id: str) -> Tenant:
        async with self._uow_factory() as uow:
            tenant = await uow.tenants.get(tenant_id)
        if not tenant.is_active:
            raise TenantNotFoundError(f"租户已停用: {tenant_id}")
        return tenant

    # ------------------------------------------------------------------
    # 物化
    # ------------------------------------------------------------------

    async def materialize_for_resource(
        self,
        tenant_id: str,
        resource: Mapping[str, Any],
        resource_type: ResourceType | str,
        resource_id: str | None = None,
        langs: Iterable[str] | None = None,
    ) -> MaterializeResult:
        """
        为资源的每个非空可翻译字段、每个目标语言（源语言除外）调用 upsert。
        空提取结果不是错误。
        """
        rtype = normalize_resource_type(resource_type)
        rid = str(resource_id if resource_id is not None else resource.get("id") or "")
        if not rid:
            raise ValidationError("资源缺少 id")

        settings = await self._settings.get(tenant_id)
        if langs is None:
            languages = settings.target_languages()
        else:
            languages = [normalize_language_code(lang) for lang in langs]
        languages = [
            lang for lang in dict.fromkeys(languages) if lang != settings.source_language
        ]

        fields = extract_translatable_fields(rtype, resource)
        result = MaterializeResult()
        if not fields or not languages:
            logger.debug(
                "资源没有可物化的字段或语言",
                tenant_id=tenant_id,
                resource=resource_ref(rtype, rid),
            )
            return result

        async with self._uow_factory() as uow:
            for field, text in fields.items():
                for lang in languages:
                    upserted = await uow.records.upsert(tenant_id, rtype, rid, field, lang, text)
                    setattr(result, upserted.outcome, getattr(result, upserted.outcome) + 1)
                    result.records.append(upserted.record)

        logger.info(
            "资源已物化为翻译记录",
            tenant_id=tenant_id,
            resource=resource_ref(rtype, rid),
            created=result.created,
            updated=result.updated,
            unchanged=result.unchanged,
        )
        return result

    async def mark_resource_deleted(
        self, tenant_id: str, resource_type: ResourceType | str, resource_id: str
    ) -> int:
        rtype = normalize_resource_type(resource_type)
        async with self._uow_factory() as uow:
            count = await uow.records.mark_resource_deleted(tenant_id, rtype, str(resource_id))
        logger.info(
            "资源的翻译记录已软删除",
            tenant_id=tenant_id,
            resource=resource_ref(rtype, str(resource_id)),
            count=count,
        )
        return count

    # ------------------------------------------------------------------
    # 翻译
    # ------------------------------------------------------------------

    async def auto_translate_one(self, tenant_id: str, record_id: str) -> TranslationRecord:
        """
        翻译单条记录。已完成且有译文、或已删除的记录为空操作。
        失败时记录写为 failed（带冷却期），并以 ProviderError 重新抛出。
        """
        async with self._uow_factory() as uow:
            record = await uow.records.get(tenant_id, record_id)

        if record.status is RecordStatus.DELETED:
            logger.debug("记录已删除，跳过翻译", tenant_id=tenant_id, record_id=record_id)
            return record
        if record.status in _DONE and record.translated_text:
            return record

        settings = await self._settings.get(tenant_id)
        source_lang = settings.source_language
        text = record.source_text

        if text.strip() in settings.do_not_translate:
            return await self._complete(tenant_id, record, text, 1.0)

        cached = await self._cache.get(text, source_lang, record.target_lang)
        if cached is not None:
            return await self._complete(tenant_id, record, cached, None)

        try:
            result = await asyncio.wait_for(
                self._engine.translate(text, source_lang, record.target_lang),
                timeout=self._opts.provider_timeout,
            )
        except asyncio.TimeoutError:
            result = EngineError(error_message="翻译引擎调用超时", is_retryable=True)

        if isinstance(result, EngineSuccess) and not result.translated_text.strip():
            result = EngineError(error_message="翻译引擎返回了空译文", is_retryable=True)
        if isinstance(result, EngineError):
            error = ProviderError(result.error_message, retryable=result.is_retryable)
            await self._mark_failed(tenant_id, record, str(error))
            raise error

        await self._cache.put(text, source_lang, record.target_lang, result.translated_text)
        return await self._complete(tenant_id, record, result.translated_text, result.confidence)

    async def _complete(
        self,
        tenant_id: str,
        record: TranslationRecord,
        translated_text: str,
        confidence: float | None,
    ) -> TranslationRecord:
        async with self._uow_factory() as uow:
            current = await uow.records.get(tenant_id, record.id, for_update=True)
            if current.source_text != record.source_text:
                logger.info(
                    "源文本在翻译期间已变化，丢弃过期译文",
                    tenant_id=tenant_id,
                    record_id=record.id,
                )
                return current
            if current.status is RecordStatus.DELETED or (
                current.status in _DONE and current.translated_text
            ):
                return current
            updated = await uow.records.update_status(
                tenant_id,
                record.id,
                RecordStatus.COMPLETED,
                translated_text=translated_text,
                confidence=confidence,
                auto_translated=True,
                last_error=None,
                retry_after=None,
            )
        logger.debug("记录翻译完成", tenant_id=tenant_id, record_id=record.id)
        return updated

    def retry_cooldown(self, attempt: int) -> float:
        """第 N 次失败后的冷却秒数：base * 2^(N-1)，不超过上限。"""
        return min(
            self._opts.failed_retry_cooldown * (2 ** max(attempt - 1, 0)),
            self._opts.max_retry_cooldown,
        )

    async def _mark_failed(
        self, tenant_id: str, record: TranslationRecord, error_message: str
    ) -> None:
        async with self._uow_factory() as uow:
            current = await uow.records.get(tenant_id, record.id, for_update=True)
            if current.source_text != record.source_text or current.status not in (
                RecordStatus.PENDING,
                RecordStatus.FAILED,
            ):
                return
            attempt = current.attempt_count + 1
            cooldown = self.retry_cooldown(attempt)
            await uow.records.update_status(
                tenant_id,
                record.id,
                RecordStatus.FAILED,
                attempt_count=attempt,
                last_error=error_message[:1000],
                retry_after=_utcnow() + timedelta(seconds=cooldown),
            )
        logger.error(
            "记录翻译失败",
            tenant_id=tenant_id,
            record_id=record.id,
            target_lang=record.target_lang,
            attempt=attempt,
            retry_in=cooldown,
            error=error_message,
        )

    async def auto_translate_batch(
        self,
        tenant_id: str,
        status: RecordStatus | str = RecordStatus.PENDING,
        limit: int | None = None,
        lang: str | None = None,
    ) -> BatchSummary:
        """
        以有界并发翻译一批记录；单条失败只计入汇总，不影响其余记录。

        - status='pending'：pending 记录，以及冷却期已过的 failed 记录。
        - status='failed'：全部 failed 记录，忽略冷却期（人工重试）。
        """
        status = parse_status(status)
        limit = limit or self._opts.default_batch_limit
        target_lang = normalize_language_code(lang) if lang else None

        async with self._uow_factory() as uow:
            await uow.tenants.get(tenant_id)
            if status is RecordStatus.PENDING:
                records = await uow.records.find_pending(
                    tenant_id, limit, target_lang=target_lang
                )
            elif status is RecordStatus.FAILED:
                records = await uow.records.find_by_status(
                    tenant_id, [RecordStatus.FAILED], limit, target_lang=target_lang
                )
            else:
                raise ValidationError(f"批量翻译只接受 pending 或 failed，收到: {status.value}")

        semaphore = asyncio.Semaphore(self._opts.batch_concurrency)

        async def _translate(record: TranslationRecord) -> TranslationRecord:
            async with semaphore:
                return await self.auto_translate_one(tenant_id, record.id)

        results = await asyncio.gather(
            *(_translate(r) for r in records), return_exceptions=True
        )

        summary = BatchSummary(processed=len(records))
        for record, outcome in zip(records, results):
            if isinstance(outcome, Exception):
                summary.failed += 1
                summary.errors.append(BatchError(ref=record.id, error=str(outcome)))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                summary.succeeded += 1

        logger.info(
            "批量自动翻译完成",
            tenant_id=tenant_id,
            status=status.value,
            processed=summary.processed,
            succeeded=summary.succeeded,
            failed=summary.failed,
        )
        return summary

    async def edit_translation(
        self, tenant_id: str, record_id: str, translated_text: str
    ) -> TranslationRecord:
        """人工编辑译文：回到 completed，auto_translated=False，需要重新同步。"""
        if not translated_text or not translated_text.strip():
            raise ValidationError("译文不能为空")
        async with self._uow_factory() as uow:
            record = await uow.records.update_status(
                tenant_id,
                record_id,
                RecordStatus.COMPLETED,
                translated_text=translated_text,
                auto_translated=False,
                last_error=None,
                retry_after=None,
            )
        logger.info("译文已人工编辑", tenant_id=tenant_id, record_id=record_id)
        return record

    async def create_record(
        self,
        tenant_id: str,
        resource_type: ResourceType | str,
        resource_id: str,
        field: str,
        target_lang: str,
        source_text: str,
    ) -> TranslationRecord:
        """手工创建单条记录；翻译单元已存在时抛出 DuplicateRecordError。"""
        rtype = normalize_resource_type(resource_type)
        lang = normalize_language_code(target_lang)
        if not field or not source_text or not source_text.strip():
            raise ValidationError("field 与 source_text 不能为空")
        async with self._uow_factory() as uow:
            await uow.tenants.get(tenant_id)
            record = await uow.records.add(
                tenant_id, rtype, str(resource_id), field, lang, source_text
            )
        logger.info("翻译记录已手工创建", tenant_id=tenant_id, record_id=record.id)
        return record

    # ------------------------------------------------------------------
    # 同步与导入
    # ------------------------------------------------------------------

    async def sync_batch(
        self, tenant_id: str, record_ids: Iterable[str] | None = None
    ) -> BatchSummary:
        """
        只取 completed 且未同步的记录，按 (资源类型, 资源 ID) 分组，逐组推送。
        推送成功的组转为 synced；失败的组保持 completed，不影响其他组。
        计数以记录为单位，错误以资源分组为单位。
        """
        tenant = await self._get_active_tenant(tenant_id)
        async with self._uow_factory() as uow:
            records = await uow.records.find_completed_unsynced(
                tenant_id, list(record_ids) if record_ids is not None else None
            )

        groups: dict[tuple[ResourceType, str], list[TranslationRecord]] = {}
        for record in records:
            groups.setdefault((record.resource_type, record.resource_id), []).append(record)

        summary = BatchSummary()
        for (rtype, rid), group in groups.items():
            ref = resource_ref(rtype, rid)
            summary.processed += len(group)
            bundle: dict[str, dict[str, str]] = {}
            for record in group:
                bundle.setdefault(record.target_lang, {})[record.field] = record.translated_text or ""

            try:
                pushed = await asyncio.wait_for(
                    self._catalog.push_translations(tenant, rtype, rid, bundle),
                    timeout=self._opts.sync_timeout,
                )
                if not pushed.ok:
                    raise SyncError(pushed.error or "平台拒绝了推送")
            except asyncio.TimeoutError:
                error = "推送译文超时"
            except Exception as e:
                error = str(e) or type(e).__name__
            else:
                accepted = [
                    r for r in group if (r.target_lang, r.field) not in pushed.skipped
                ]
                await self._mark_synced(tenant_id, accepted)
                summary.succeeded += len(accepted)
                rejected = len(group) - len(accepted)
                if rejected:
                    # 平台未接受的字段保持 completed
                    summary.failed += rejected
                    summary.errors.append(
                        BatchError(
                            ref=ref,
                            error="平台未接受的字段: "
                            + ", ".join(
                                f"{field}@{lang}" for lang, field in sorted(pushed.skipped)
                            ),
                        )
                    )
                continue

            summary.failed += len(group)
            summary.errors.append(BatchError(ref=ref, error=error))
            logger.warning(
                "资源分组推送失败，记录保持 completed",
                tenant_id=tenant_id,
                resource=ref,
                records=len(group),
                error=error,
            )

        logger.info(
            "批量同步完成",
            tenant_id=tenant_id,
            groups=len(groups),
            succeeded=summary.succeeded,
            failed=summary.failed,
        )
        return summary

    async def _mark_synced(self, tenant_id: str, group: list[TranslationRecord]) -> None:
        async with self._uow_factory() as uow:
            for record in group:
                current = await uow.records.get(tenant_id, record.id, for_update=True)
                # 推送期间被编辑或重置的记录保留给下一次同步
                if (
                    current.status is RecordStatus.COMPLETED
                    and current.translated_text == record.translated_text
                    and current.source_text == record.source_text
                ):
                    await uow.records.update_status(tenant_id, record.id, RecordStatus.SYNCED)

    async def import_from_platform(
        self,
        tenant_id: str,
        resource_type: ResourceType | str,
        limit: int | None = None,
    ) -> ImportSummary:
        """从平台拉取资源并物化；已有任何记录的资源跳过。"""
        rtype = normalize_resource_type(resource_type)
        limit = limit or self._opts.import_limit
        tenant = await self._get_active_tenant(tenant_id)

        try:
            resources = await asyncio.wait_for(
                self._catalog.fetch_resources(tenant, rtype, limit),
                timeout=self._opts.sync_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SyncError(f"从平台拉取 {rtype.value} 超时") from e

        ids = [str(r["id"]) for r in resources if r.get("id") is not None]
        async with self._uow_factory() as uow:
            existing = await uow.records.existing_resource_ids(tenant_id, rtype, ids)

        summary = ImportSummary(fetched=len(resources))
        for resource in resources:
            if resource.get("id") is None:
                summary.skipped += 1
                continue
            rid = str(resource["id"])
            if rid in existing:
                summary.skipped += 1
                continue
            materialized = await self.materialize_for_resource(tenant_id, resource, rtype, rid)
            existing.add(rid)
            summary.imported += 1
            summary.created += materialized.created

        logger.info(
            "平台资源导入完成",
            tenant_id=tenant_id,
            resource_type=rtype.value,
            fetched=summary.fetched,
            imported=summary.imported,
            skipped=summary.skipped,
        )
        return summary

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    async def process_webhook(
        self, tenant_id: str, topic: str, resource: Mapping[str, Any]
    ) -> dict[str, Any]:
        """delete 软删除记录；create/update 物化记录，并按自动化规则为新工作入队翻译。"""
        rtype, action = parse_topic(topic)
        if action not in WEBHOOK_ACTIONS:
            logger.info("忽略不支持的 Webhook 动作", tenant_id=tenant_id, topic=topic)
            return {"action": action, "ignored": True}

        rid = str(resource.get("id") or "")
        if not rid:
            raise ValidationError(f"Webhook 资源缺少 id: {topic}")

        if action == "delete":
            deleted = await self.mark_resource_deleted(tenant_id, rtype, rid)
            return {"action": action, "deleted": deleted}

        materialized = await self.materialize_for_resource(tenant_id, resource, rtype, rid)
        settings = await self._settings.get(tenant_id)
        queued = 0
        if settings.auto_translate:
            for record in materialized.records:
                if record.status is not RecordStatus.PENDING:
                    continue
                if not settings.automation_rules.allows(rtype, record.field):
                    continue
                try:
                    await self.enqueue_auto_translate(tenant_id, record.id)
                except LingoSyncError as e:
                    # 内联模式下翻译失败已落库为 failed，等待后续扫描重试
                    logger.warning(
                        "自动翻译任务执行失败",
                        tenant_id=tenant_id,
                        record_id=record.id,
                        error=str(e),
                    )
                    continue
                queued += 1

        return {
            "action": action,
            "created": materialized.created,
            "updated": materialized.updated,
            "unchanged": materialized.unchanged,
            "queued": queued,
        }

    # ------------------------------------------------------------------
    # 入队
    # ------------------------------------------------------------------

    async def enqueue_auto_translate(self, tenant_id: str, record_id: str) -> JobReceipt:
        return await self._queue.enqueue(
            JobKind.AUTO_TRANSLATE, {"tenant_id": tenant_id, "record_id": record_id}
        )

    async def enqueue_create_translations(
        self,
        tenant_id: str,
        resource_type: ResourceType | str,
        resource: Mapping[str, Any],
        langs: list[str] | None = None,
    ) -> JobReceipt:
        rtype = normalize_resource_type(resource_type)
        return await self._queue.enqueue(
            JobKind.CREATE_TRANSLATIONS,
            {
                "tenant_id": tenant_id,
                "resource_type": rtype.value,
                "resource": dict(resource),
                "langs": langs,
            },
        )

    async def enqueue_bulk_translate(
        self,
        tenant_id: str,
        limit: int | None = None,
        status: RecordStatus | str = RecordStatus.PENDING,
    ) -> dict[str, Any]:
        """为至多 `limit` 条匹配记录投递一个 batch_translate 任务，返回计数。"""
        status = parse_status(status)
        limit = limit or self._opts.default_batch_limit
        async with self._uow_factory() as uow:
            await uow.tenants.get(tenant_id)
            if status is RecordStatus.FAILED:
                matching = await uow.records.find_by_status(tenant_id, [status], limit)
            else:
                matching = await uow.records.find_pending(tenant_id, limit)

        if not matching:
            return {"queued": 0, "job_id": None}
        return await self._enqueue_batch(
            JobKind.BATCH_TRANSLATE,
            {"tenant_id": tenant_id, "limit": limit, "status": status.value},
            len(matching),
        )

    async def enqueue_bulk_sync(self, tenant_id: str) -> dict[str, Any]:
        """为全部 completed 未同步记录投递一个 sync_to_platform 任务，返回数量。"""
        async with self._uow_factory() as uow:
            await uow.tenants.get(tenant_id)
            records = await uow.records.find_completed_unsynced(tenant_id)

        if not records:
            return {"queued": 0, "job_id": None}
        return await self._enqueue_batch(
            JobKind.SYNC_TO_PLATFORM,
            {"tenant_id": tenant_id, "record_ids": [r.id for r in records]},
            len(records),
        )

    async def _enqueue_batch(
        self, kind: JobKind, payload: dict[str, Any], queued: int
    ) -> dict[str, Any]:
        """
        投递批量任务并返回汇总。

        内联模式下任务在入队时即执行，处理器的失败以 `error` 字段返回，
        与 broker 模式一样不向调用方抛出。
        """
        try:
            receipt = await self._queue.enqueue(kind, payload)
        except LingoSyncError as e:
            if self._queue.mode != "inline":
                raise
            logger.warning(
                "内联批量任务执行失败",
                tenant_id=payload.get("tenant_id"),
                kind=kind.value,
                error=str(e),
            )
            return {"queued": queued, "job_id": None, "mode": "inline", "error": str(e)}
        response: dict[str, Any] = {
            "queued": queued,
            "job_id": receipt.job_id,
            "mode": receipt.mode,
        }
        if receipt.result is not None:
            response["result"] = receipt.result
        return response

    async def enqueue_import(
        self, tenant_id: str, resource_type: ResourceType | str, limit: int | None = None
    ) -> JobReceipt:
        rtype = normalize_resource_type(resource_type)
        await self._get_active_tenant(tenant_id)
        return await self._queue.enqueue(
            JobKind.FETCH_FROM_PLATFORM,
            {"tenant_id": tenant_id, "resource_type": rtype.value, "limit": limit},
        )

    async def enqueue_sync_if_enabled(self, tenant_id: str) -> JobReceipt | None:
        """批量翻译成功后，若租户开启了同步，投递一次同步任务。"""
        settings = await self._settings.get(tenant_id)
        if not settings.sync_to_platform:
            return None
        return await self._queue.enqueue(JobKind.SYNC_TO_PLATFORM, {"tenant_id": tenant_id})

    async def clear_translation_cache(self, source_lang: str, target_lang: str) -> int:
        """清理某一语言对的缓存译文，返回删除的条目数。"""
        return await self._cache.clear(
            normalize_language_code(source_lang), normalize_language_code(target_lang)
        )
