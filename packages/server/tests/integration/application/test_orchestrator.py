# packages/server/tests/integration/application/test_orchestrator.py
"""
对编排器进行集成测试：真实的 SQLite 仓库 + 假翻译引擎 + 内存目录 + 记录型队列。
"""

import pytest

from lingosync.adapters.catalog import MemoryCatalogAdapter
from lingosync.application import Orchestrator, TranslationCache
from lingosync.infrastructure.persistence import SqlAlchemySettingsStore
from lingosync.infrastructure.uow import UowFactory
from lingosync_core.exceptions import (
    DuplicateRecordError,
    ProviderError,
    TenantNotFoundError,
    ValidationError,
)
from lingosync_core.types import (
    EngineSuccess,
    JobKind,
    RecordStatus,
    ResourceType,
    Tenant,
)

from tests.helpers.factories import make_product
from tests.helpers.fakes import FakeTranslationEngine, RecordingJobQueue

pytestmark = [pytest.mark.db, pytest.mark.integration]

P = ResourceType.PRODUCT


async def _records(uow_factory: UowFactory, tenant_id: str):
    async with uow_factory() as uow:
        page = await uow.records.list_by_tenant(tenant_id, limit=200)
    return page.items


async def _get(uow_factory: UowFactory, tenant_id: str, record_id: str):
    async with uow_factory() as uow:
        return await uow.records.get(tenant_id, record_id)


async def _materialize(orchestrator: Orchestrator, tenant: Tenant, **product):
    result = await orchestrator.materialize_for_resource(tenant.id, make_product(**product), P)
    return {(r.field, r.target_lang): r for r in result.records}


class TestMaterialize:
    @pytest.mark.asyncio
    async def test_red_shoes_creates_one_record_per_language(
        self, orchestrator: Orchestrator, tenant: Tenant, uow_factory: UowFactory
    ):
        result = await orchestrator.materialize_for_resource(
            tenant.id, make_product(title="Red Shoes", body_html=""), P
        )

        assert result.created == 2
        records = await _records(uow_factory, tenant.id)
        assert sorted((r.field, r.target_lang) for r in records) == [
            ("title", "es"),
            ("title", "fr"),
        ]
        assert all(r.status is RecordStatus.PENDING for r in records)

    @pytest.mark.asyncio
    async def test_rematerializing_is_idempotent(
        self, orchestrator: Orchestrator, tenant: Tenant
    ):
        await _materialize(orchestrator, tenant)
        again = await orchestrator.materialize_for_resource(tenant.id, make_product(), P)
        assert (again.created, again.updated, again.unchanged) == (0, 0, 2)

    @pytest.mark.asyncio
    async def test_explicit_languages_skip_source_language(
        self, orchestrator: Orchestrator, tenant: Tenant
    ):
        result = await orchestrator.materialize_for_resource(
            tenant.id, make_product(vendor="Acme"), "products", langs=["en", "de", "DE"]
        )
        assert sorted((r.field, r.target_lang) for r in result.records) == [
            ("title", "de"),
            ("vendor", "de"),
        ]

    @pytest.mark.asyncio
    async def test_resource_without_id_is_rejected(
        self, orchestrator: Orchestrator, tenant: Tenant
    ):
        with pytest.raises(ValidationError):
            await orchestrator.materialize_for_resource(tenant.id, {"title": "x"}, P)

    @pytest.mark.asyncio
    async def test_empty_extraction_is_not_an_error(
        self, orchestrator: Orchestrator, tenant: Tenant
    ):
        result = await orchestrator.materialize_for_resource(
            tenant.id, make_product(title="  ", body_html=None), P
        )
        assert result.created == 0
        assert result.records == []


class TestAutoTranslateOne:
    @pytest.mark.asyncio
    async def test_hello_becomes_hola(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        fake_engine: FakeTranslationEngine,
        translation_cache: TranslationCache,
    ):
        records = await _materialize(orchestrator, tenant, title="Hello")
        fake_engine.responses["Hello"] = EngineSuccess(translated_text="Hola", confidence=0.95)

        record = await orchestrator.auto_translate_one(tenant.id, records[("title", "es")].id)

        assert record.status is RecordStatus.COMPLETED
        assert record.translated_text == "Hola"
        assert record.auto_translated is True
        assert record.confidence == 0.95
        assert fake_engine.calls == [("Hello", "en", "es")]
        assert await translation_cache.get("Hello", "en", "es") == "Hola"

    @pytest.mark.asyncio
    async def test_cache_hit_skips_the_engine(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        fake_engine: FakeTranslationEngine,
        translation_cache: TranslationCache,
    ):
        records = await _materialize(orchestrator, tenant, title="Hello")
        await translation_cache.put("Hello", "en", "es", "Hola")

        record = await orchestrator.auto_translate_one(tenant.id, records[("title", "es")].id)

        assert fake_engine.calls == []
        assert record.status is RecordStatus.COMPLETED
        assert record.translated_text == "Hola"
        assert record.confidence is None

    @pytest.mark.asyncio
    async def test_cleared_cache_sends_text_back_to_the_engine(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        fake_engine: FakeTranslationEngine,
        translation_cache: TranslationCache,
    ):
        await translation_cache.put("Hello", "en", "es", "Hola")
        await translation_cache.put("Hello", "en", "fr", "Bonjour")

        assert await orchestrator.clear_translation_cache("EN", "es") == 1
        assert await translation_cache.get("Hello", "en", "es") is None
        assert await translation_cache.get("Hello", "en", "fr") == "Bonjour"

        records = await _materialize(orchestrator, tenant, title="Hello")
        await orchestrator.auto_translate_one(tenant.id, records[("title", "es")].id)
        assert fake_engine.calls == [("Hello", "en", "es")]

    @pytest.mark.asyncio
    async def test_do_not_translate_keeps_source_text(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        fake_engine: FakeTranslationEngine,
        settings_store: SqlAlchemySettingsStore,
    ):
        await settings_store.update(tenant.id, {"doNotTranslate": ["Acme"]})
        records = await _materialize(orchestrator, tenant, title="Acme")

        record = await orchestrator.auto_translate_one(tenant.id, records[("title", "fr")].id)

        assert fake_engine.calls == []
        assert record.translated_text == "Acme"
        assert record.confidence == 1.0

    @pytest.mark.asyncio
    async def test_failure_marks_record_failed_with_cooldown(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        fake_engine: FakeTranslationEngine,
        uow_factory: UowFactory,
    ):
        records = await _materialize(orchestrator, tenant, title="Hello")
        record_id = records[("title", "es")].id
        fake_engine.failures["Hello"] = False

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.auto_translate_one(tenant.id, record_id)
        assert exc_info.value.retryable is False

        record = await _get(uow_factory, tenant.id, record_id)
        assert record.status is RecordStatus.FAILED
        assert record.attempt_count == 1
        assert "Fake engine failed" in record.last_error
        assert record.retry_after is not None

        with pytest.raises(ProviderError):
            await orchestrator.auto_translate_one(tenant.id, record_id)
        assert (await _get(uow_factory, tenant.id, record_id)).attempt_count == 2

    @pytest.mark.asyncio
    async def test_empty_translation_is_a_retryable_failure(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        fake_engine: FakeTranslationEngine,
        uow_factory: UowFactory,
    ):
        records = await _materialize(orchestrator, tenant, title="Hello")
        fake_engine.responses["Hello"] = EngineSuccess(translated_text="   ")

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.auto_translate_one(tenant.id, records[("title", "es")].id)

        assert exc_info.value.retryable is True
        record = await _get(uow_factory, tenant.id, records[("title", "es")].id)
        assert record.status is RecordStatus.FAILED

    @pytest.mark.asyncio
    async def test_completed_and_deleted_records_are_noops(
        self, orchestrator: Orchestrator, tenant: Tenant, fake_engine: FakeTranslationEngine
    ):
        records = await _materialize(orchestrator, tenant)
        es_id, fr_id = records[("title", "es")].id, records[("title", "fr")].id
        await orchestrator.auto_translate_one(tenant.id, es_id)
        assert len(fake_engine.calls) == 1

        again = await orchestrator.auto_translate_one(tenant.id, es_id)
        assert again.status is RecordStatus.COMPLETED
        assert len(fake_engine.calls) == 1

        await orchestrator.mark_resource_deleted(tenant.id, P, "1001")
        deleted = await orchestrator.auto_translate_one(tenant.id, fr_id)
        assert deleted.status is RecordStatus.DELETED
        assert len(fake_engine.calls) == 1

    @pytest.mark.asyncio
    async def test_result_for_stale_source_is_discarded(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        fake_engine: FakeTranslationEngine,
        uow_factory: UowFactory,
    ):
        records = await _materialize(orchestrator, tenant, title="Red Shoes")
        record_id = records[("title", "es")].id

        async def _edit_source_during_translation():
            async with uow_factory() as uow:
                await uow.records.upsert(tenant.id, P, "1001", "title", "es", "Blue Shoes")

        fake_engine.before_return = _edit_source_during_translation
        result = await orchestrator.auto_translate_one(tenant.id, record_id)

        assert result.status is RecordStatus.PENDING
        assert result.source_text == "Blue Shoes"
        assert result.translated_text is None

    def test_retry_cooldown_grows_and_caps(self, orchestrator: Orchestrator):
        assert orchestrator.retry_cooldown(1) == 300.0
        assert orchestrator.retry_cooldown(2) == 600.0
        assert orchestrator.retry_cooldown(3) == 1200.0
        assert orchestrator.retry_cooldown(20) == 21600.0


class TestAutoTranslateBatch:
    @pytest.mark.asyncio
    async def test_partial_failure_is_summarized(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        fake_engine: FakeTranslationEngine,
        uow_factory: UowFactory,
    ):
        for rid, title in (("1", "Alpha"), ("2", "Beta"), ("3", "Gamma")):
            await _materialize(orchestrator, tenant, product_id=rid, title=title)
        fake_engine.failures["Beta"] = True

        summary = await orchestrator.auto_translate_batch(tenant.id, limit=50)

        assert summary.processed == 6
        assert summary.succeeded == 4
        assert summary.failed == 2
        assert summary.succeeded + summary.failed == summary.processed
        records = await _records(uow_factory, tenant.id)
        failed_ids = {r.id for r in records if r.status is RecordStatus.FAILED}
        assert {e.ref for e in summary.errors} == failed_ids
        for record in records:
            expected = RecordStatus.FAILED if record.source_text == "Beta" else RecordStatus.COMPLETED
            assert record.status is expected

    @pytest.mark.asyncio
    async def test_failed_status_ignores_cooldown(
        self, orchestrator: Orchestrator, tenant: Tenant, fake_engine: FakeTranslationEngine
    ):
        await _materialize(orchestrator, tenant, title="Beta")
        fake_engine.failures["Beta"] = True
        first = await orchestrator.auto_translate_batch(tenant.id)
        assert first.failed == 2

        cooling = await orchestrator.auto_translate_batch(tenant.id, status="pending")
        assert cooling.processed == 0

        del fake_engine.failures["Beta"]
        retried = await orchestrator.auto_translate_batch(tenant.id, status="failed")
        assert retried.processed == 2
        assert retried.succeeded == 2

    @pytest.mark.asyncio
    async def test_language_filter_and_limit(
        self, orchestrator: Orchestrator, tenant: Tenant, fake_engine: FakeTranslationEngine
    ):
        for rid in ("1", "2", "3"):
            await _materialize(orchestrator, tenant, product_id=rid, title=f"Item {rid}")

        summary = await orchestrator.auto_translate_batch(tenant.id, limit=2, lang="fr")

        assert summary.processed == 2
        assert {call[2] for call in fake_engine.calls} == {"fr"}

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        fake_engine: FakeTranslationEngine,
        test_config,
    ):
        for rid in range(6):
            await _materialize(orchestrator, tenant, product_id=str(rid), title=f"Item {rid}")
        fake_engine.delay = 0.01

        summary = await orchestrator.auto_translate_batch(tenant.id, limit=50)

        assert summary.succeeded == 12
        assert 1 <= fake_engine.max_in_flight <= test_config.orchestrator.batch_concurrency

    @pytest.mark.asyncio
    async def test_rejects_other_statuses(self, orchestrator: Orchestrator, tenant: Tenant):
        with pytest.raises(ValidationError):
            await orchestrator.auto_translate_batch(tenant.id, status="synced")
        with pytest.raises(ValidationError):
            await orchestrator.auto_translate_batch(tenant.id, status="bogus")

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, orchestrator: Orchestrator, db_engine):
        with pytest.raises(TenantNotFoundError):
            await orchestrator.auto_translate_batch("missing")


class TestManualEdits:
    @pytest.mark.asyncio
    async def test_edit_marks_completed_and_unsynced(
        self, orchestrator: Orchestrator, tenant: Tenant
    ):
        records = await _materialize(orchestrator, tenant)
        record_id = records[("title", "es")].id
        await orchestrator.auto_translate_one(tenant.id, record_id)
        await orchestrator.sync_batch(tenant.id)

        edited = await orchestrator.edit_translation(tenant.id, record_id, "Zapatos Rojos")

        assert edited.status is RecordStatus.COMPLETED
        assert edited.translated_text == "Zapatos Rojos"
        assert edited.auto_translated is False
        assert edited.synced is False

    @pytest.mark.asyncio
    async def test_edit_rejects_blank_text(self, orchestrator: Orchestrator, tenant: Tenant):
        records = await _materialize(orchestrator, tenant)
        with pytest.raises(ValidationError):
            await orchestrator.edit_translation(tenant.id, records[("title", "es")].id, "  ")

    @pytest.mark.asyncio
    async def test_create_record_rejects_duplicates(
        self, orchestrator: Orchestrator, tenant: Tenant
    ):
        record = await orchestrator.create_record(tenant.id, "product", "1001", "title", "es", "Hi")
        assert record.status is RecordStatus.PENDING
        with pytest.raises(DuplicateRecordError):
            await orchestrator.create_record(tenant.id, "product", "1001", "title", "es", "Hi")

    @pytest.mark.asyncio
    async def test_create_record_validates_input(
        self, orchestrator: Orchestrator, tenant: Tenant
    ):
        with pytest.raises(ValidationError):
            await orchestrator.create_record(tenant.id, "spaceship", "1", "title", "es", "Hi")
        with pytest.raises(ValidationError):
            await orchestrator.create_record(tenant.id, "product", "1", "title", "@@", "Hi")
        with pytest.raises(TenantNotFoundError):
            await orchestrator.create_record("missing", "product", "1", "title", "es", "Hi")


class TestSyncBatch:
    @pytest.mark.asyncio
    async def test_failing_group_stays_completed(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        catalog: MemoryCatalogAdapter,
        uow_factory: UowFactory,
    ):
        await _materialize(orchestrator, tenant, product_id="1001", title="Red Shoes")
        await _materialize(orchestrator, tenant, product_id="1002", title="Blue Hat")
        await orchestrator.auto_translate_batch(tenant.id, limit=50)
        catalog.fail_for("1002")

        summary = await orchestrator.sync_batch(tenant.id)

        assert (summary.processed, summary.succeeded, summary.failed) == (4, 2, 2)
        assert [e.ref for e in summary.errors] == ["product:1002"]
        for record in await _records(uow_factory, tenant.id):
            if record.resource_id == "1001":
                assert record.status is RecordStatus.SYNCED
                assert record.synced is True
            else:
                assert record.status is RecordStatus.COMPLETED
        assert catalog.pushed == [
            {
                "tenant_id": tenant.id,
                "resource_type": "product",
                "resource_id": "1001",
                "translations": {
                    "es": {"title": "es:Red Shoes"},
                    "fr": {"title": "fr:Red Shoes"},
                },
            }
        ]

    @pytest.mark.asyncio
    async def test_fields_rejected_by_platform_are_not_marked_synced(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        catalog: MemoryCatalogAdapter,
        uow_factory: UowFactory,
    ):
        await _materialize(orchestrator, tenant, body_html="<p>Soft</p>")
        await orchestrator.auto_translate_batch(tenant.id, limit=50)
        catalog.reject_field("body_html")

        summary = await orchestrator.sync_batch(tenant.id)

        assert (summary.processed, summary.succeeded, summary.failed) == (4, 2, 2)
        assert summary.errors[0].ref == "product:1001"
        assert "body_html@es" in summary.errors[0].error
        for record in await _records(uow_factory, tenant.id):
            if record.field == "title":
                assert record.status is RecordStatus.SYNCED
            else:
                assert record.status is RecordStatus.COMPLETED
                assert record.synced is False

    @pytest.mark.asyncio
    async def test_only_completed_records_are_pushed(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        catalog: MemoryCatalogAdapter,
    ):
        records = await _materialize(orchestrator, tenant)
        es_id = records[("title", "es")].id
        await orchestrator.auto_translate_one(tenant.id, es_id)

        summary = await orchestrator.sync_batch(
            tenant.id, [es_id, records[("title", "fr")].id]
        )

        assert summary.processed == 1
        assert catalog.pushed[0]["translations"] == {"es": {"title": "es:Red Shoes"}}
        assert (await orchestrator.sync_batch(tenant.id)).processed == 0

    @pytest.mark.asyncio
    async def test_inactive_tenant_is_rejected(
        self, orchestrator: Orchestrator, tenant: Tenant, uow_factory: UowFactory
    ):
        async with uow_factory() as uow:
            await uow.tenants.set_active(tenant.id, False)
        with pytest.raises(TenantNotFoundError):
            await orchestrator.sync_batch(tenant.id)


class TestImport:
    @pytest.mark.asyncio
    async def test_skips_resources_with_existing_records(
        self, orchestrator: Orchestrator, tenant: Tenant, catalog: MemoryCatalogAdapter
    ):
        catalog.add_resource(tenant.shop_domain, P, make_product(1, "Red Shoes"))
        catalog.add_resource(tenant.shop_domain, P, make_product(2, "Blue Hat", "<p>Warm</p>"))
        await _materialize(orchestrator, tenant, product_id="1")

        summary = await orchestrator.import_from_platform(tenant.id, "products")

        assert (summary.fetched, summary.imported, summary.skipped) == (2, 1, 1)
        assert summary.created == 4

    @pytest.mark.asyncio
    async def test_respects_limit(
        self, orchestrator: Orchestrator, tenant: Tenant, catalog: MemoryCatalogAdapter
    ):
        for rid in range(5):
            catalog.add_resource(tenant.shop_domain, P, make_product(rid, f"P{rid}"))
        summary = await orchestrator.import_from_platform(tenant.id, P, limit=3)
        assert summary.fetched == 3


class TestWebhookProcessing:
    @pytest.mark.asyncio
    async def test_update_materializes_and_enqueues(
        self, orchestrator: Orchestrator, tenant: Tenant, recording_queue: RecordingJobQueue
    ):
        result = await orchestrator.process_webhook(
            tenant.id, "products/update", make_product(title="Red Shoes")
        )

        assert result == {
            "action": "update",
            "created": 2,
            "updated": 0,
            "unchanged": 0,
            "queued": 2,
        }
        assert recording_queue.kinds() == [JobKind.AUTO_TRANSLATE, JobKind.AUTO_TRANSLATE]
        assert {j.payload["tenant_id"] for j in recording_queue.jobs} == {tenant.id}

    @pytest.mark.asyncio
    async def test_automation_rules_gate_enqueue(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        recording_queue: RecordingJobQueue,
        settings_store: SqlAlchemySettingsStore,
    ):
        await settings_store.update(tenant.id, {"automationRules": {"productTitles": False}})
        result = await orchestrator.process_webhook(
            tenant.id, "products/create", make_product(body_html="<p>Soft</p>")
        )
        assert result["created"] == 4
        assert result["queued"] == 2
        assert all(j.kind is JobKind.AUTO_TRANSLATE for j in recording_queue.jobs)

    @pytest.mark.asyncio
    async def test_auto_translate_disabled(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        recording_queue: RecordingJobQueue,
        settings_store: SqlAlchemySettingsStore,
    ):
        await settings_store.update(tenant.id, {"autoTranslate": False})
        result = await orchestrator.process_webhook(tenant.id, "products/create", make_product())
        assert result["queued"] == 0
        assert recording_queue.jobs == []

    @pytest.mark.asyncio
    async def test_delete_soft_deletes_records(
        self, orchestrator: Orchestrator, tenant: Tenant, uow_factory: UowFactory
    ):
        await _materialize(orchestrator, tenant)
        result = await orchestrator.process_webhook(tenant.id, "products/delete", {"id": 1001})

        assert result == {"action": "delete", "deleted": 2}
        records = await _records(uow_factory, tenant.id)
        assert {r.status for r in records} == {RecordStatus.DELETED}

    @pytest.mark.asyncio
    async def test_late_update_does_not_revive_deleted_resource(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        uow_factory: UowFactory,
        recording_queue: RecordingJobQueue,
    ):
        product = make_product(title="Red Shoes")
        await orchestrator.process_webhook(tenant.id, "products/create", product)
        await orchestrator.process_webhook(tenant.id, "products/delete", {"id": product["id"]})
        recording_queue.jobs.clear()

        result = await orchestrator.process_webhook(tenant.id, "products/update", product)

        assert result["unchanged"] == 2
        assert result["queued"] == 0
        assert recording_queue.jobs == []
        records = await _records(uow_factory, tenant.id)
        assert {r.status for r in records} == {RecordStatus.DELETED}

    @pytest.mark.asyncio
    async def test_unsupported_action_is_ignored(
        self, orchestrator: Orchestrator, tenant: Tenant, recording_queue: RecordingJobQueue
    ):
        result = await orchestrator.process_webhook(tenant.id, "products/publish", make_product())
        assert result == {"action": "publish", "ignored": True}
        assert recording_queue.jobs == []


class TestEnqueueing:
    @pytest.mark.asyncio
    async def test_bulk_translate_reports_matching_count(
        self, orchestrator: Orchestrator, tenant: Tenant, recording_queue: RecordingJobQueue
    ):
        assert await orchestrator.enqueue_bulk_translate(tenant.id) == {
            "queued": 0,
            "job_id": None,
        }
        await _materialize(orchestrator, tenant)

        queued = await orchestrator.enqueue_bulk_translate(tenant.id, limit=1)

        assert queued["queued"] == 1
        assert queued["mode"] == "redis"
        job = recording_queue.jobs[0]
        assert job.kind is JobKind.BATCH_TRANSLATE
        assert job.payload == {"tenant_id": tenant.id, "limit": 1, "status": "pending"}

    @pytest.mark.asyncio
    async def test_bulk_sync_lists_record_ids(
        self, orchestrator: Orchestrator, tenant: Tenant, recording_queue: RecordingJobQueue
    ):
        records = await _materialize(orchestrator, tenant)
        es_id = records[("title", "es")].id
        await orchestrator.auto_translate_one(tenant.id, es_id)

        queued = await orchestrator.enqueue_bulk_sync(tenant.id)

        assert queued["queued"] == 1
        assert recording_queue.jobs[0].kind is JobKind.SYNC_TO_PLATFORM
        assert recording_queue.jobs[0].payload["record_ids"] == [es_id]

    @pytest.mark.asyncio
    async def test_sync_follow_up_respects_tenant_setting(
        self,
        orchestrator: Orchestrator,
        tenant: Tenant,
        recording_queue: RecordingJobQueue,
        settings_store: SqlAlchemySettingsStore,
    ):
        receipt = await orchestrator.enqueue_sync_if_enabled(tenant.id)
        assert receipt is not None and receipt.kind is JobKind.SYNC_TO_PLATFORM

        await settings_store.update(tenant.id, {"syncToShopify": False})
        assert await orchestrator.enqueue_sync_if_enabled(tenant.id) is None
        assert len(recording_queue.jobs) == 1

    @pytest.mark.asyncio
    async def test_import_job_payload(
        self, orchestrator: Orchestrator, tenant: Tenant, recording_queue: RecordingJobQueue
    ):
        receipt = await orchestrator.enqueue_import(tenant.id, "pages", limit=5)
        assert receipt.kind is JobKind.FETCH_FROM_PLATFORM
        assert recording_queue.jobs[0].payload == {
            "tenant_id": tenant.id,
            "resource_type": "page",
            "limit": 5,
        }
