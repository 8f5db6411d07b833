# packages/server/src/lingosync/presentation/api/app.py
"""
FastAPI 应用工厂。

运行时（DI 容器、队列选择、引擎初始化）在 lifespan 中创建并在关闭时释放。
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

import lingosync
from lingosync.bootstrap import (
    create_app_config,
    create_runtime,
    resolve_env_mode,
    shutdown_runtime,
)
from lingosync.config import LingoSyncConfig

from .errors import install_error_handlers
from .routes import cache, queue, records, webhooks


def create_app(config: LingoSyncConfig | None = None) -> FastAPI:
    config = config or create_app_config(resolve_env_mode())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container = await create_runtime(config, service_name="lingosync-api")
        app.state.container = container
        try:
            yield
        finally:
            await shutdown_runtime(container)

    app = FastAPI(
        title="LingoSync API",
        description="多租户电商目录翻译编排服务",
        version=lingosync.__version__,
        lifespan=lifespan,
    )
    install_error_handlers(app)

    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
    app.include_router(records.router, prefix="/tenants", tags=["records"])
    app.include_router(queue.router, prefix="/queue", tags=["queue"])
    app.include_router(cache.router, prefix="/cache", tags=["cache"])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "service": "lingosync-api"}

    return app
