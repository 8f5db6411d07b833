# packages/server/src/lingosync/presentation/cli/commands/queue.py
"""
任务队列运维命令：统计、死信查看与重投、清理计数。
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from lingosync_core.types import Lane

from .._state import CLISharedState
from .._utils import get_container, print_json, run_command

app = typer.Typer(help="查看和维护任务队列。", no_args_is_help=True)
console = Console()

LANE_OPTION = Annotated[Lane, typer.Option("--lane", help="任务通道。")]


@app.command("stats")
def stats(ctx: typer.Context):
    """显示各通道的 waiting/active/completed/failed 计数。"""
    state: CLISharedState = ctx.obj

    async def _stats():
        async with get_container(state) as container:
            queue = container.job_queue()
            return queue.mode, await queue.stats()

    mode, lanes = run_command(_stats)
    table = Table(title=f"Queue ({mode})", show_header=True, header_style="bold magenta")
    table.add_column("Lane", style="cyan")
    for column in ("Waiting", "Active", "Completed", "Failed"):
        table.add_column(column, justify="right")
    for lane, s in lanes.items():
        table.add_row(lane, str(s.waiting), str(s.active), str(s.completed), str(s.failed))
    console.print(table)


@app.command("dead")
def dead(
    ctx: typer.Context,
    lane: LANE_OPTION = Lane.TRANSLATION,
    limit: Annotated[int, typer.Option("--limit", help="最多显示条数。")] = 20,
):
    """列出耗尽重试次数的死信任务（最新的在前）。"""
    state: CLISharedState = ctx.obj

    async def _dead():
        async with get_container(state) as container:
            return await container.job_queue().dead_jobs(lane, limit)

    entries = run_command(_dead)
    if not entries:
        console.print(f"[green]通道 {lane.value} 没有死信任务。[/green]")
        return
    print_json(entries, title=f"☠️ 死信任务 ({lane.value})", border_style="red")


@app.command("requeue")
def requeue(
    ctx: typer.Context,
    lane: LANE_OPTION = Lane.TRANSLATION,
    limit: Annotated[int, typer.Option("--limit", help="最多重投条数。")] = 50,
):
    """把死信任务以全新的尝试次数重新投递。"""
    state: CLISharedState = ctx.obj

    async def _requeue():
        async with get_container(state) as container:
            return await container.job_queue().requeue_dead(lane, limit)

    jobs = run_command(_requeue)
    console.print(f"[green]✅ 已重投 {len(jobs)} 个任务。[/green]")


@app.command("clean")
def clean(ctx: typer.Context):
    """清零各通道的 completed 计数。"""
    state: CLISharedState = ctx.obj

    async def _clean():
        async with get_container(state) as container:
            return await container.job_queue().clean_completed()

    cleared = run_command(_clean)
    console.print(f"[green]✅ 已清理 {cleared} 条完成记录。[/green]")
