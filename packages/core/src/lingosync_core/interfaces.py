# packages/core/src/lingosync_core/interfaces.py
"""
定义了 LingoSync 系统中所有基础设施和外部协作方的抽象接口协议 (Protocols)。
高层模块（如 Application 层）应依赖于这些抽象接口，而不是具体的实现类。
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .types import (
        Job,
        JobKind,
        JobReceipt,
        Lane,
        LaneStats,
        PushResult,
        ResourceType,
        Tenant,
    )


class CacheHandler(Protocol):
    """定义了缓存处理器的接口。"""

    async def get(self, key: str) -> Any | None:
        """从缓存中获取一个值。"""
        ...

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """向缓存中设置一个值，并可选地设置过期时间（秒）。"""
        ...

    async def delete(self, key: str) -> None:
        """从缓存中删除一个键。"""
        ...

    async def delete_prefix(self, prefix: str) -> int:
        """删除所有以 prefix 开头的键，返回删除数量。"""
        ...


class JobQueue(Protocol):
    """
    三通道任务队列的统一接口。

    broker 模式与内联（降级）模式都实现此接口，编排器无需关心背后的实现。
    """

    mode: str

    async def enqueue(
        self,
        kind: "JobKind",
        payload: dict[str, Any],
        *,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
    ) -> "JobReceipt":
        """将一个任务投递到其所属的通道。"""
        ...

    async def drain_once(self, lane: "Lane", count: int) -> int:
        """从通道取出至多 `count` 个任务并处理，返回处理数量。"""
        ...

    async def reclaim_stale(self, lane: "Lane") -> int:
        """接管崩溃消费者遗留的未确认任务。"""
        ...

    async def stats(self) -> dict[str, "LaneStats"]:
        """按通道返回 waiting/active/completed/failed 计数。"""
        ...

    async def dead_jobs(self, lane: "Lane", limit: int = 50) -> list[dict[str, Any]]:
        ...

    async def requeue_dead(self, lane: "Lane", limit: int = 50) -> list["Job"]:
        ...

    async def clean_completed(self) -> int:
        ...

    async def close(self) -> None:
        ...


class CatalogSyncAdapter(Protocol):
    """外部电商平台的读（拉取资源）与写（推送译文）能力。"""

    async def fetch_resources(
        self, tenant: "Tenant", resource_type: "ResourceType", limit: int
    ) -> list[dict[str, Any]]:
        ...

    async def push_translations(
        self,
        tenant: "Tenant",
        resource_type: "ResourceType",
        resource_id: str,
        translations: dict[str, dict[str, str]],
    ) -> "PushResult":
        """推送一个资源的全部译文，结构为 {lang: {field: text}}。"""
        ...

    async def close(self) -> None:
        ...


class SettingsStore(Protocol):
    """租户设置的只读视图（从编排器角度）。"""

    async def get(self, tenant_id: str) -> Any:
        ...
