# packages/server/src/lingosync/presentation/cli/commands/api.py
from typing import Annotated, Optional

import typer
import uvicorn

from .._state import CLISharedState

app = typer.Typer(help="运行 HTTP 接口服务。", no_args_is_help=True)


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Annotated[Optional[str], typer.Option("--host", help="监听地址。")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="监听端口。")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="开发模式自动重载。")] = False,
):
    """启动 FastAPI 服务。"""
    state: CLISharedState = ctx.obj
    uvicorn.run(
        "lingosync.presentation.api.app:create_app",
        factory=True,
        host=host or state.config.host,
        port=port or state.config.port,
        reload=reload,
        log_config=None,
    )
