# packages/server/src/lingosync/presentation/cli/_utils.py
"""
CLI 内部共享的辅助工具：运行时生命周期、租户解析与结果输出。
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

import typer
from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from lingosync.bootstrap import lingosync_runtime
from lingosync.di import AppContainer
from lingosync_core.exceptions import LingoSyncError, TenantNotFoundError

from ._state import CLISharedState

T = TypeVar("T")

console = Console()


@asynccontextmanager
async def get_container(state: CLISharedState) -> AsyncIterator[AppContainer]:
    """
    为单条命令创建完整运行时，命令结束（无论成功或失败）后释放资源。
    """
    async with lingosync_runtime(state.config, service_name="lingosync-cli") as container:
        yield container


async def resolve_tenant_id(container: AppContainer, ref: str) -> str:
    """接受租户 ID 或店铺域名，返回租户 ID。"""
    async with container.uow_factory() as uow:
        tenant = await uow.tenants.find_by_domain(ref)
        if tenant is not None:
            return tenant.id
        return (await uow.tenants.get(ref)).id


def run_command(fn: Callable[[], Awaitable[T]]) -> T:
    """运行异步命令体，将领域异常转换为带退出码的友好输出。"""
    try:
        return asyncio.run(fn())
    except TenantNotFoundError as e:
        console.print(f"[bold red]❌ 租户不存在: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    except LingoSyncError as e:
        console.print(f"[bold red]❌ 操作失败 ({type(e).__name__}): {e}[/bold red]")
        raise typer.Exit(code=1) from e


def print_json(data: Any, title: str, border_style: str = "green") -> None:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    console.print(
        Panel(
            Syntax(
                json.dumps(data, indent=2, ensure_ascii=False, default=str),
                "json",
                theme="monokai",
            ),
            title=title,
            border_style=border_style,
        )
    )
