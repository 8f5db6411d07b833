# packages/server/tests/conftest.py
"""
Pytest 共享夹具。

核心 Fixtures:
- test_config: 指向临时 SQLite 文件、强制内联队列的配置对象。
- db_engine: (函数级) 已按 ORM 元数据建表的异步引擎。
- uow_factory: 基于 db_engine 的 UoW 工厂，用于在测试中与数据库交互。
- tenant: 目标语言为 [es, fr] 的已注册租户。
- orchestrator 及其协作者: 假引擎、内存目录、内存缓存、记录型队列。
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine

from lingosync.adapters.catalog import MemoryCatalogAdapter
from lingosync.application import Orchestrator, TranslationCache
from lingosync.config import (
    CatalogSettings,
    DatabaseSettings,
    LingoSyncConfig,
    LoggingSettings,
    QueueSettings,
    RedisSettings,
    WebhookSettings,
)
from lingosync.domain.settings import TenantSettings
from lingosync.infrastructure.cache import MemoryCacheHandler
from lingosync.infrastructure.db import (
    create_async_db_engine,
    create_async_sessionmaker,
    create_schema,
    dispose_engine,
)
from lingosync.infrastructure.persistence import SqlAlchemySettingsStore
from lingosync.infrastructure.uow import SqlAlchemyUnitOfWork, UowFactory
from lingosync_core.types import Tenant

from tests.helpers.factories import WEBHOOK_SECRET, make_shop_domain
from tests.helpers.fakes import FakeTranslationEngine, RecordingJobQueue


@pytest.fixture
def test_config(tmp_path) -> LingoSyncConfig:
    """每个测试一个独立的 SQLite 文件库。"""
    return LingoSyncConfig(
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'lingosync.db'}"),
        redis=RedisSettings(url=None),
        queue=QueueSettings(mode="inline"),
        webhook=WebhookSettings(shared_secret=SecretStr(WEBHOOK_SECRET)),
        logging=LoggingSettings(level="WARNING", format="json"),
        catalog=CatalogSettings(provider="memory"),
        active_engine="debug",
    )


@pytest_asyncio.fixture
async def db_engine(test_config: LingoSyncConfig) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_db_engine(test_config)
    await create_schema(engine)
    yield engine
    await dispose_engine(engine)


@pytest.fixture
def uow_factory(db_engine: AsyncEngine) -> UowFactory:
    sessionmaker = create_async_sessionmaker(db_engine)

    def _factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(sessionmaker)

    return _factory


@pytest_asyncio.fixture
async def tenant(uow_factory: UowFactory) -> Tenant:
    async with uow_factory() as uow:
        return await uow.tenants.add(
            make_shop_domain(), access_token="shpat_test", settings={"languages": ["es", "fr"]}
        )


@pytest.fixture
def fake_engine() -> FakeTranslationEngine:
    return FakeTranslationEngine()


@pytest.fixture
def catalog() -> MemoryCatalogAdapter:
    return MemoryCatalogAdapter()


@pytest.fixture
def cache_handler() -> MemoryCacheHandler:
    return MemoryCacheHandler()


@pytest.fixture
def translation_cache(cache_handler: MemoryCacheHandler) -> TranslationCache:
    return TranslationCache(cache_handler)


@pytest.fixture
def recording_queue() -> RecordingJobQueue:
    return RecordingJobQueue()


@pytest.fixture
def settings_store(uow_factory: UowFactory) -> SqlAlchemySettingsStore:
    return SqlAlchemySettingsStore(uow_factory, TenantSettings())


@pytest.fixture
def orchestrator(
    test_config: LingoSyncConfig,
    uow_factory: UowFactory,
    translation_cache: TranslationCache,
    fake_engine: FakeTranslationEngine,
    catalog: MemoryCatalogAdapter,
    recording_queue: RecordingJobQueue,
    settings_store: SqlAlchemySettingsStore,
) -> Orchestrator:
    return Orchestrator(
        uow_factory=uow_factory,
        cache=translation_cache,
        engine=fake_engine,
        catalog=catalog,
        queue=recording_queue,
        settings_store=settings_store,
        config=test_config,
    )
