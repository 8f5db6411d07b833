# packages/server/src/lingosync/presentation/cli/commands/worker.py
import asyncio
from typing import Annotated, Optional

import structlog
import typer
from rich.console import Console

from lingosync.bootstrap import lingosync_runtime
from lingosync.workers import LaneWorker, install_signal_handlers
from lingosync_core.types import Lane

from .._state import CLISharedState

console = Console()
logger = structlog.get_logger(__name__)

app = typer.Typer(help="运行后台 Worker 进程。", no_args_is_help=True)


@app.command("run")
def run_workers(
    ctx: typer.Context,
    lanes: Annotated[
        Optional[list[Lane]],
        typer.Option("--lane", help="要消费的通道，可重复。"),
    ] = None,
    all_lanes: Annotated[
        bool, typer.Option("--all", help="在一个进程中消费所有通道 (用于开发)。")
    ] = False,
):
    """
    启动一个或多个通道 Worker。
    内联模式下任务在提交时即已执行，因此不需要 Worker。
    """
    state: CLISharedState = ctx.obj
    selected = list(Lane) if all_lanes else list(dict.fromkeys(lanes or []))
    if not selected:
        console.print("[bold red]错误: 必须至少指定一个通道 (--lane 或 --all)。[/bold red]")
        raise typer.Exit(1)

    async def _run() -> bool:
        async with lingosync_runtime(state.config, service_name="lingosync-worker") as container:
            queue = container.job_queue()
            if queue.mode == "inline":
                logger.warning("队列处于内联模式，没有需要消费的任务，Worker 退出。")
                return False
            shutdown_event = asyncio.Event()
            install_signal_handlers(shutdown_event)
            workers = [LaneWorker(state.config, queue, lane) for lane in selected]
            await asyncio.gather(*(w.run_loop(shutdown_event) for w in workers))
            return True

    try:
        console.print(
            f"[cyan]🚀 正在启动 Worker: {', '.join(lane.value for lane in selected)}[/cyan]"
        )
        ran = asyncio.run(_run())
    except Exception as e:
        logger.error("Worker 进程意外终止。", error=str(e), exc_info=True)
        raise typer.Exit(1) from e

    if ran:
        console.print("[bold green]✅ 所有 Worker 已安全关闭。[/bold green]")
    else:
        console.print("[yellow]⚠️ 内联模式无需 Worker (检查 LINGOSYNC_QUEUE__MODE 与 Redis 配置)。[/yellow]")
