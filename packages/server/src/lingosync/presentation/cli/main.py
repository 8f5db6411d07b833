# packages/server/src/lingosync/presentation/cli/main.py
import typer
from rich.console import Console
from rich.traceback import install as install_rich_tracebacks

from lingosync.bootstrap import create_app_config, resolve_env_mode

from ._state import CLISharedState
from .commands import api, cache, db, queue, records, tenant, worker

install_rich_tracebacks(show_locals=False, word_wrap=True)

app = typer.Typer(
    name="lingosync",
    help="🌐 LingoSync 翻译编排服务命令行管理工具。",
    add_completion=False,
    no_args_is_help=True,
)

# 注册所有子命令
app.add_typer(api.app, name="api")
app.add_typer(cache.app, name="cache")
app.add_typer(db.app, name="db")
app.add_typer(queue.app, name="queue")
app.add_typer(records.app, name="records")
app.add_typer(tenant.app, name="tenant")
app.add_typer(worker.app, name="worker")

console = Console()


@app.callback()
def main(ctx: typer.Context):
    """
    主回调函数：加载配置并放入上下文。运行时由各子命令按需创建。
    """
    try:
        config = create_app_config(env_mode=resolve_env_mode())
    except Exception as e:
        console.print(f"[bold red]❌ 启动失败：无法加载配置: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    ctx.obj = CLISharedState(config)


if __name__ == "__main__":
    app()
