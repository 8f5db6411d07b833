# packages/server/src/lingosync/infrastructure/db/engine.py
"""
异步引擎工厂。

- PostgreSQL：映射连接池参数（QueuePool）。
- SQLite：NullPool，忽略池参数；设置忙等待超时以容忍并发写入。
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from lingosync.config import LingoSyncConfig

from .base import metadata

SQLITE_BUSY_TIMEOUT = 30


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def create_async_db_engine(cfg: LingoSyncConfig) -> AsyncEngine:
    """根据配置创建 AsyncEngine。"""
    url = cfg.database.url
    kwargs: dict[str, Any] = {
        "echo": cfg.database.echo,
        "pool_pre_ping": cfg.db_pool_pre_ping,
    }

    if is_sqlite_url(url):
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"timeout": SQLITE_BUSY_TIMEOUT}
        engine = create_async_engine(url, **kwargs)
        _install_sqlite_transaction_hooks(engine)
        return engine

    if cfg.db_pool_size is not None:
        kwargs["pool_size"] = cfg.db_pool_size
    if cfg.db_max_overflow is not None:
        kwargs["max_overflow"] = cfg.db_max_overflow
    if cfg.db_pool_recycle is not None:
        kwargs["pool_recycle"] = cfg.db_pool_recycle
    kwargs["pool_timeout"] = cfg.db_pool_timeout
    return create_async_engine(url, **kwargs)


def _install_sqlite_transaction_hooks(engine: AsyncEngine) -> None:
    """
    接管 pysqlite 的隐式事务：由 SQLAlchemy 显式发出 BEGIN IMMEDIATE。
    保存点（upsert 的并发插入回退）因此可用，并发写入者在忙等待超时内排队。
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


async def create_schema(engine: AsyncEngine) -> None:
    """按 ORM 元数据建表（幂等）。"""
    # 确保所有模型已注册到 metadata
    from . import _schema  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
