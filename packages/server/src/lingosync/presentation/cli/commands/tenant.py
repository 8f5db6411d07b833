# packages/server/src/lingosync/presentation/cli/commands/tenant.py
"""
租户（店铺）的注册、查看与设置管理。
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Optional

import typer
from rich.console import Console

from lingosync.domain.settings import merge_settings
from lingosync_core.exceptions import ValidationError

from .._state import CLISharedState
from .._utils import get_container, print_json, resolve_tenant_id, run_command

app = typer.Typer(help="管理租户及其翻译设置。", no_args_is_help=True)
console = Console()

TENANT_ARG = Annotated[str, typer.Argument(help="租户 ID 或店铺域名。")]


def parse_assignments(assignments: list[str]) -> dict[str, Any]:
    """把 `key=value` 形式的参数解析为字典；值优先按 JSON 解析，否则视为字符串。"""
    changes: dict[str, Any] = {}
    for item in assignments:
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            raise ValidationError(f"设置项格式应为 key=value: {item!r}")
        try:
            value: Any = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        changes[key.strip()] = value
    return changes


@app.command("add")
def add_tenant(
    ctx: typer.Context,
    shop_domain: Annotated[str, typer.Argument(help="店铺域名，如 demo.myshopify.com。")],
    access_token: Annotated[
        Optional[str], typer.Option("--token", help="平台 Admin API 访问令牌。")
    ] = None,
    languages: Annotated[
        Optional[str], typer.Option("--languages", "-l", help="逗号分隔的目标语言列表。")
    ] = None,
):
    """注册一个新租户。"""
    state: CLISharedState = ctx.obj
    settings: dict[str, Any] = {}
    if languages:
        settings["languages"] = [x.strip() for x in languages.split(",") if x.strip()]

    async def _add():
        async with get_container(state) as container:
            if settings:
                # 写入前先完成校验，避免落库非法设置
                merge_settings(settings, container.settings_store().defaults)
            async with container.uow_factory() as uow:
                return await uow.tenants.add(shop_domain, access_token, settings)

    tenant = run_command(_add)
    console.print(
        f"[green]✅ 租户已创建！[/green] ID: [bold]{tenant.id}[/bold] ({tenant.shop_domain})"
    )


@app.command("show")
def show_tenant(ctx: typer.Context, tenant: TENANT_ARG):
    """显示租户信息与生效中的设置（已合并默认值）。"""
    state: CLISharedState = ctx.obj

    async def _show():
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            async with container.uow_factory() as uow:
                info = await uow.tenants.get(tenant_id)
            settings = await container.settings_store().get(tenant_id)
            return info, settings

    info, settings = run_command(_show)
    print_json(
        {
            "id": info.id,
            "shop_domain": info.shop_domain,
            "is_active": info.is_active,
            "settings": settings.model_dump(mode="json", by_alias=True),
        },
        title=f"租户 {info.shop_domain}",
    )


@app.command("settings")
def update_settings(
    ctx: typer.Context,
    tenant: TENANT_ARG,
    assignments: Annotated[
        list[str],
        typer.Option("--set", "-s", help="要修改的设置项，格式 key=value，可重复。"),
    ],
):
    """修改租户设置，例如 --set autoTranslate=false --set 'languages=["es","de"]'。"""
    state: CLISharedState = ctx.obj

    async def _update():
        changes = parse_assignments(assignments)
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            return await container.settings_store().update(tenant_id, changes)

    settings = run_command(_update)
    print_json(settings.model_dump(mode="json", by_alias=True), title="✅ 设置已更新")


@app.command("deactivate")
def deactivate_tenant(ctx: typer.Context, tenant: TENANT_ARG):
    """停用租户；停用后其 webhook 与任务均被拒绝。"""
    state: CLISharedState = ctx.obj

    async def _deactivate():
        async with get_container(state) as container:
            tenant_id = await resolve_tenant_id(container, tenant)
            async with container.uow_factory() as uow:
                return await uow.tenants.set_active(tenant_id, False)

    info = run_command(_deactivate)
    console.print(f"[yellow]租户 {info.shop_domain} 已停用。[/yellow]")
