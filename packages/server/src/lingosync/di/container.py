# packages/server/src/lingosync/di/container.py
"""
应用依赖注入 (DI) 容器。

使用 `dependency-injector` 定义和装配所有核心组件。任务队列的默认提供者是内联队列；
`bootstrap.create_runtime` 在启动时探测 broker 后一次性覆盖它。
"""

from dependency_injector import containers, providers

from lingosync.adapters.catalog import create_catalog_adapter
from lingosync.adapters.engines.factory import create_engine_instance
from lingosync.application import (
    JobHandlers,
    Orchestrator,
    TranslationCache,
    TranslationQueryService,
    WebhookIngestor,
)
from lingosync.config import LingoSyncConfig
from lingosync.domain.settings import TenantSettings
from lingosync.infrastructure.cache import create_cache_handler
from lingosync.infrastructure.db import create_async_db_engine, create_async_sessionmaker
from lingosync.infrastructure.persistence import SqlAlchemySettingsStore
from lingosync.infrastructure.queue import JobDispatcher, create_inline_queue
from lingosync.infrastructure.redis import create_redis_client
from lingosync.infrastructure.uow import SqlAlchemyUnitOfWork
from lingosync.observability import setup_logging_from_config


def default_tenant_settings(config: LingoSyncConfig) -> TenantSettings:
    return TenantSettings(source_language=config.default_source_lang)


class AppContainer(containers.DeclarativeContainer):
    """
    LingoSync 应用的核心 DI 容器。
    """

    # ==================================================================
    # 核心提供者 (Core Providers)
    # ==================================================================

    config = providers.Dependency(instance_of=LingoSyncConfig)
    service_name = providers.Object("lingosync")

    logging = providers.Resource(
        setup_logging_from_config,
        cfg=config,
        service=service_name,
    )

    db_engine = providers.Singleton(create_async_db_engine, cfg=config)

    db_sessionmaker = providers.Singleton(create_async_sessionmaker, engine=db_engine)

    uow_factory = providers.Factory(
        SqlAlchemyUnitOfWork,
        sessionmaker=db_sessionmaker,
    )

    # ==================================================================
    # 可选基础设施 (Optional Infrastructure)
    # ==================================================================

    redis_client = providers.Singleton(create_redis_client, config=config)

    cache_handler = providers.Singleton(
        create_cache_handler,
        config=config,
        client=redis_client,
    )

    translation_cache = providers.Singleton(
        TranslationCache,
        handler=cache_handler,
        ttl=config.provided.redis.cache.ttl,
        timeout=config.provided.redis.cache.timeout,
    )

    dispatcher = providers.Singleton(JobDispatcher)

    job_queue = providers.Singleton(
        create_inline_queue,
        config=config,
        dispatcher=dispatcher,
    )

    # ==================================================================
    # 适配器 (Adapters)
    # ==================================================================

    engine = providers.Singleton(
        create_engine_instance,
        config=config,
        engine_name=config.provided.active_engine,
    )

    catalog_adapter = providers.Singleton(create_catalog_adapter, config=config)

    # ==================================================================
    # 应用服务 (Application Services)
    # ==================================================================

    settings_store = providers.Singleton(
        SqlAlchemySettingsStore,
        uow_factory=uow_factory.provider,
        defaults=providers.Callable(default_tenant_settings, config=config),
    )

    orchestrator = providers.Singleton(
        Orchestrator,
        uow_factory=uow_factory.provider,
        cache=translation_cache,
        engine=engine,
        catalog=catalog_adapter,
        queue=job_queue,
        settings_store=settings_store,
        config=config,
    )

    query_service = providers.Singleton(
        TranslationQueryService,
        uow_factory=uow_factory.provider,
        queue=job_queue,
    )

    webhook_ingestor = providers.Singleton(
        WebhookIngestor,
        uow_factory=uow_factory.provider,
        queue=job_queue,
        shared_secret=config.provided.webhook.shared_secret,
    )

    job_handlers = providers.Singleton(JobHandlers, orchestrator=orchestrator)
