# packages/server/src/lingosync/presentation/cli/commands/cache.py
"""
译文缓存运维命令。
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from .._state import CLISharedState
from .._utils import get_container, run_command

app = typer.Typer(help="维护译文缓存。", no_args_is_help=True)
console = Console()


@app.command("clear")
def clear(
    ctx: typer.Context,
    source: Annotated[str, typer.Option("--source", "-s", help="源语言代码。")],
    target: Annotated[str, typer.Option("--target", "-t", help="目标语言代码。")],
):
    """删除某一语言对的全部缓存译文，下次翻译将重新调用引擎。"""
    state: CLISharedState = ctx.obj

    async def _clear():
        async with get_container(state) as container:
            return await container.orchestrator().clear_translation_cache(source, target)

    deleted = run_command(_clear)
    console.print(f"[green]✅ 已清理 {deleted} 条缓存译文 ({source} → {target})。[/green]")
