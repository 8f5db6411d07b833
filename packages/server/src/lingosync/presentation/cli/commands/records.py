# packages/server/src/lingosync/presentation/cli/commands/records.py
"""
翻译记录的查询、翻译、编辑、同步与导入命令。
"""

from __future__ import annotations

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from .._state import CLISharedState
from .._utils import get_container, print_json, resolve_tenant_id, run_command

app = typer.Typer(help="查询和管理翻译记录。", no_args_is_help=True)
console = Console()

TENANT_ARG = Annotated[str, typer.Argument(help="租户 ID 或店铺域名。")]


def _truncate(text: Optional[str], width: int = 40) -> str:
    if not text:
        return "-"
    return text if len(text) <= width else text[: width - 1] + "…"


@app.command("list")
def list_records(
    ctx: typer.Context,
    tenant: TENANT_ARG,
    status: Annotated[Optional[str], typer.Option("--status", help="按状态过滤。")] = None,
    lang: Annotated[Optional[str], typer.Option("--lang", "-l", help="按目标语言过滤。")] = None,
    resource_type: Annotated[
        Optional[str], typer.Option("--type", "-t", help="按资源类型过滤。")
    ] = None,
    limit: Annotated[int, typer.Option("--limit", help="每页条数。")] = 50,
    offset: Annotated[int, typer.Option("--offset", help="偏移量。")] = 0,
):
    """分页列出租户的翻译记录（最新更新的在前）。"""
    state: CLISharedState = ctx.obj

    async def _list():
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            return await container.query_service().list_records(
                tenant_id,
                status=status,
                lang=lang,
                resource_type=resource_type,
                limit=limit,
                offset=offset,
            )

    page = run_command(_list)
    table = Table(
        title=f"Records ({len(page.items)}/{page.total})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("ID", style="dim")
    table.add_column("Resource", style="cyan")
    table.add_column("Field")
    table.add_column("Lang")
    table.add_column("Status")
    table.add_column("Source")
    table.add_column("Translation")
    for r in page.items:
        table.add_row(
            r.id,
            f"{r.resource_type.value}:{r.resource_id}",
            r.field,
            r.target_lang,
            r.status.value,
            _truncate(r.source_text),
            _truncate(r.translated_text),
        )
    console.print(table)


@app.command("stats")
def stats(ctx: typer.Context, tenant: TENANT_ARG):
    """显示各状态计数与按语言的完成进度。"""
    state: CLISharedState = ctx.obj

    async def _stats():
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            return await container.query_service().get_stats(tenant_id)

    print_json(run_command(_stats), title="📊 翻译统计")


@app.command("translate")
def translate(
    ctx: typer.Context,
    tenant: TENANT_ARG,
    status: Annotated[
        str, typer.Option("--status", help="pending（含冷却期已过的失败记录）或 failed。")
    ] = "pending",
    limit: Annotated[Optional[int], typer.Option("--limit", help="本批最大条数。")] = None,
    lang: Annotated[Optional[str], typer.Option("--lang", "-l", help="只翻译该语言。")] = None,
    enqueue: Annotated[
        bool, typer.Option("--enqueue", help="投递到翻译通道而不是在当前进程执行。")
    ] = False,
):
    """批量自动翻译。"""
    state: CLISharedState = ctx.obj

    async def _translate():
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            orchestrator = container.orchestrator()
            if enqueue:
                return await orchestrator.enqueue_bulk_translate(
                    tenant_id, limit=limit, status=status
                )
            return await orchestrator.auto_translate_batch(
                tenant_id, status=status, limit=limit, lang=lang
            )

    print_json(run_command(_translate), title="🤖 批量翻译")


@app.command("edit")
def edit(
    ctx: typer.Context,
    tenant: TENANT_ARG,
    record_id: Annotated[str, typer.Argument(help="翻译记录 ID。")],
    text: Annotated[str, typer.Argument(help="人工译文。")],
):
    """人工编辑译文，记录转为 completed。"""
    state: CLISharedState = ctx.obj

    async def _edit():
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            return await container.orchestrator().edit_translation(tenant_id, record_id, text)

    record = run_command(_edit)
    console.print(f"[green]✅ 记录 [bold]{record.id}[/bold] 已更新为 {record.status.value}。[/green]")


@app.command("sync")
def sync(
    ctx: typer.Context,
    tenant: TENANT_ARG,
    record_ids: Annotated[
        Optional[list[str]], typer.Option("--record", "-r", help="只同步指定记录，可重复。")
    ] = None,
):
    """把已完成且未同步的译文推送到电商平台。"""
    state: CLISharedState = ctx.obj

    async def _sync():
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            return await container.orchestrator().sync_batch(tenant_id, record_ids or None)

    summary = run_command(_sync)
    print_json(summary, title="🔄 同步结果", border_style="green" if not summary.failed else "yellow")


@app.command("import")
def import_resources(
    ctx: typer.Context,
    tenant: TENANT_ARG,
    resource_type: Annotated[str, typer.Argument(help="资源类型，如 product、page。")],
    limit: Annotated[Optional[int], typer.Option("--limit", help="最多拉取的资源数。")] = None,
):
    """从电商平台导入尚未跟踪的资源并生成翻译记录。"""
    state: CLISharedState = ctx.obj

    async def _import():
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            return await container.orchestrator().import_from_platform(
                tenant_id, resource_type, limit
            )

    print_json(run_command(_import), title="📥 导入结果")


@app.command("memory")
def memory(
    ctx: typer.Context,
    tenant: TENANT_ARG,
    lang: Annotated[Optional[str], typer.Option("--lang", "-l", help="目标语言。")] = None,
    limit: Annotated[int, typer.Option("--limit", help="最多条数。")] = 50,
):
    """列出翻译记忆（已完成的原文/译文对）。"""
    state: CLISharedState = ctx.obj

    async def _memory():
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            return await container.query_service().translation_memory(
                tenant_id, lang=lang, limit=limit
            )

    entries = run_command(_memory)
    if not entries:
        console.print("[yellow]暂无翻译记忆。[/yellow]")
        return
    table = Table(title="Translation Memory", show_header=True, header_style="bold magenta")
    table.add_column("Lang", style="cyan")
    table.add_column("Source")
    table.add_column("Translation")
    for e in entries:
        table.add_row(e.target_lang, _truncate(e.source_text, 60), _truncate(e.translated_text, 60))
    console.print(table)
