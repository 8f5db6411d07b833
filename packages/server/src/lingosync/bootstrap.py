# packages/server/src/lingosync/bootstrap.py
"""
应用引导程序。

负责加载配置、创建并装配 DI 容器，以及运行期资源（队列、Redis、数据库、引擎）
与进程生命周期的绑定。
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Literal

import structlog
from dependency_injector import providers
from dotenv import load_dotenv

from lingosync.config import LingoSyncConfig
from lingosync.di import AppContainer
from lingosync.infrastructure.cache import create_cache_handler
from lingosync.infrastructure.db import dispose_engine
from lingosync.infrastructure.queue import create_job_queue
from lingosync.infrastructure.redis import close_redis_client, ping_redis

EnvMode = Literal["prod", "dev", "test"]

SERVER_ROOT_DIR = Path(__file__).resolve().parents[2]
logger = structlog.get_logger("lingosync.bootstrap")


def _load_dotenv_files(env_mode: EnvMode) -> list[Path]:
    """根据环境模式加载 .env / .env.dev / .env.test，后加载者覆盖先加载者。"""
    candidates = [SERVER_ROOT_DIR / ".env"]
    if env_mode in ("dev", "test"):
        candidates.append(SERVER_ROOT_DIR / ".env.dev")
    if env_mode == "test":
        candidates.append(SERVER_ROOT_DIR / ".env.test")

    loaded = [p for p in candidates if p.is_file()]
    for path in loaded:
        load_dotenv(path, override=True, encoding="utf-8")
    logger.debug("Dotenv files loaded", files=[p.name for p in loaded])
    return loaded


def resolve_env_mode() -> EnvMode:
    mode = os.getenv("LINGOSYNC_ENV", "dev").lower()
    return mode if mode in ("prod", "dev", "test") else "dev"  # type: ignore[return-value]


def create_app_config(env_mode: EnvMode = "dev") -> LingoSyncConfig:
    """加载、验证并返回应用配置对象。"""
    _load_dotenv_files(env_mode)
    config = LingoSyncConfig()
    logger.debug(
        "Config instance created",
        env_mode=env_mode,
        queue_mode=config.queue.mode,
        engine=config.active_engine,
    )
    return config


def create_container(config: LingoSyncConfig, service_name: str = "lingosync") -> AppContainer:
    """创建并装配 DI 容器，初始化日志资源。"""
    container = AppContainer()
    container.config.override(config)
    container.service_name.override(service_name)
    container.init_resources()
    return container


async def create_runtime(
    config: LingoSyncConfig, service_name: str = "lingosync-server"
) -> AppContainer:
    """
    创建完整的运行时：探测 broker 一次并选定队列实现，注册任务处理器，初始化编排器。
    """
    container = create_container(config, service_name)

    client = container.redis_client()
    redis_ok = await ping_redis(client)
    if client is not None and not redis_ok:
        container.cache_handler.override(
            providers.Singleton(create_cache_handler, config=config, client=None)
        )

    queue = await create_job_queue(config, container.dispatcher(), client if redis_ok else None)
    container.job_queue.override(providers.Object(queue))

    container.job_handlers().register(container.dispatcher())
    await container.orchestrator().initialize()
    logger.info("运行时已就绪", service=service_name, queue_mode=queue.mode)
    return container


async def shutdown_runtime(container: AppContainer) -> None:
    """按依赖的逆序关闭运行期资源。"""
    await container.orchestrator().close()
    await container.job_queue().close()
    await close_redis_client(container.redis_client())
    await dispose_engine(container.db_engine())
    container.shutdown_resources()
    logger.info("运行时已关闭")


@asynccontextmanager
async def lingosync_runtime(
    config: LingoSyncConfig, service_name: str = "lingosync-server"
) -> AsyncIterator[AppContainer]:
    container = await create_runtime(config, service_name)
    try:
        yield container
    finally:
        await shutdown_runtime(container)
