# packages/server/src/lingosync/presentation/cli/commands/db.py
"""
数据库管理命令。
"""

from __future__ import annotations

import typer
from rich.console import Console

from lingosync.infrastructure.db import create_async_db_engine, create_schema, dispose_engine

from .._state import CLISharedState
from .._utils import run_command

app = typer.Typer(help="数据库管理。", no_args_is_help=True)
console = Console()


@app.command("init")
def init_db(ctx: typer.Context):
    """创建所有缺失的数据表（幂等）。"""
    state: CLISharedState = ctx.obj

    async def _init() -> None:
        engine = create_async_db_engine(state.config)
        try:
            await create_schema(engine)
        finally:
            await dispose_engine(engine)

    console.print("[cyan]正在初始化数据库结构...[/cyan]")
    run_command(_init)
    console.print("[green]✅ 数据库结构已就绪。[/green]")
