# packages/server/src/lingosync/observability/logging_config.py
"""
集中配置日志系统：structlog ⇄ 标准 logging，并与 Rich 集成。

两种输出：
- console：开发环境的面板式输出（本地时间，长值折行）。
- json   ：生产环境的结构化日志（ISO-8601 UTC），便于日志平台聚合。

Worker 与 API 进程都在启动时调用 `setup_logging_from_config`，
并通过 contextvars 绑定服务名，任务处理器再按需绑定 tenant_id / lane / job_id。
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Literal

import structlog
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from structlog.typing import Processor

if TYPE_CHECKING:
    from lingosync.config import LingoSyncConfig

APP_LOGGER_NAME = "lingosync"

_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "asyncio",
    "aiosqlite",
    "sqlalchemy.engine.Engine",
    "uvicorn.access",
)


class HybridPanelRenderer:
    """
    structlog 处理器：将每条日志渲染为一个 Rich 面板。

    标题为等宽级别标签 + logger 名称，正文为事件消息，
    附加键值对以固定宽度的键列排列，超长值去引号后折行。
    """

    _LEVEL_STYLES: dict[str, tuple[str, str]] = {
        "debug": ("cyan", "DEBUG   "),
        "info": ("green", "INFO    "),
        "warning": ("yellow", "WARNING "),
        "error": ("bold red", "ERROR   "),
        "critical": ("magenta", "CRITICAL"),
    }

    def __init__(
        self,
        *,
        log_level: str = "INFO",
        kv_truncate_at: int = 256,
        show_timestamp: bool = True,
        show_logger_name: bool = True,
        kv_key_width: int = 15,
        panel_padding: tuple[int, int] = (0, 1),
    ) -> None:
        self._console = Console()
        self._log_level = log_level.upper()
        self._kv_truncate_at = kv_truncate_at
        self._show_timestamp = show_timestamp
        self._show_logger_name = show_logger_name
        self._kv_key_width = kv_key_width
        self._panel_padding = panel_padding
        self._is_first_render = True

    def __call__(
        self, logger: Any, name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        event_msg = str(event_dict.pop("event", "")).strip()
        if not event_msg:
            return ""

        timestamp = event_dict.pop("timestamp", "")
        level = event_dict.pop("level", "info").lower()
        logger_name = event_dict.pop("logger", "unknown")
        event_dict.pop("_record", None)
        event_dict.pop("_from_structlog", None)

        border_style, level_text = self._LEVEL_STYLES.get(
            level, ("dim", level.upper())
        )
        rendered = self._render_panel(
            timestamp=str(timestamp),
            level_text=level_text,
            border_style=border_style,
            logger_name=logger_name,
            event=event_msg,
            kv=event_dict,
        )

        # 首条日志前插入空行，避免与命令行提示粘连
        if self._is_first_render and rendered:
            self._is_first_render = False
            return f"\n{rendered}"
        return rendered

    def _format_value(self, value: Any) -> str:
        value_repr = repr(value)
        if len(value_repr) > self._kv_truncate_at or "\n" in value_repr:
            if value_repr[:1] in ("'", '"') and value_repr[-1:] == value_repr[:1]:
                value_repr = value_repr[1:-1]
        return value_repr

    def _render_panel(
        self,
        *,
        timestamp: str,
        level_text: str,
        border_style: str,
        logger_name: str,
        event: str,
        kv: MutableMapping[str, Any],
    ) -> str:
        title_markup = f"[{border_style}]{level_text}[/]"
        if self._show_logger_name:
            title_markup += f" [cyan dim]({logger_name})[/]"

        body: list[Any] = [Text(event)]
        if kv:
            table = Table(show_header=False, show_edge=False, box=None, padding=(0, 1))
            table.add_column(style="dim", justify="right", width=self._kv_key_width)
            table.add_column(style="bright_white", overflow="fold")
            for key, value in sorted(kv.items()):
                table.add_row(f"{key} :", Text(self._format_value(value)))
            body.append(table)

        subtitle = (
            Text(timestamp, style="dim")
            if (self._show_timestamp and timestamp)
            else None
        )
        with self._console.capture() as capture:
            self._console.print(
                Panel(
                    Group(*body),
                    title=Text.from_markup(title_markup),
                    title_align="left",
                    subtitle=subtitle,
                    subtitle_align="right",
                    border_style=border_style,
                    expand=False,
                    padding=self._panel_padding,
                )
            )
        return capture.get().rstrip()


def setup_logging(
    *,
    log_level: str = "INFO",
    log_format: Literal["json", "console"] = "console",
    root_level: str | None = None,
    service: str | None = None,
    silence_noisy_libs: bool = True,
) -> None:
    """
    配置全局 structlog 日志系统。

    Args:
        log_level: `lingosync` logger 的最低级别。
        log_format: 'console'（开发）或 'json'（生产）。
        root_level: 根 logger 级别，默认 WARNING 以降低第三方噪声。
        service: 通过 contextvars 绑定到所有日志的服务名。
        silence_noisy_libs: 是否下调 httpx/sqlalchemy 等 logger 的级别。
    """
    timestamper = (
        structlog.processors.TimeStamper(fmt="iso", utc=True)
        if log_format == "json"
        else structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False)
    )

    shared_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]

    structlog.configure(
        processors=[
            *shared_chain,
            timestamper,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    final_renderer: Processor
    if log_format == "console":
        final_renderer = HybridPanelRenderer(log_level=log_level)
    else:
        final_renderer = structlog.processors.JSONRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=final_renderer,
        foreign_pre_chain=[*shared_chain, timestamper],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel((root_level or "WARNING").upper())

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(log_level.upper())
    app_logger.propagate = True

    structlog.contextvars.clear_contextvars()
    if service:
        structlog.contextvars.bind_contextvars(service=service)

    if silence_noisy_libs:
        for noisy in _NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.get_logger("lingosync.logging_config").info(
        "日志系统已配置完成。",
        log_format=log_format,
        app_log_level=log_level.upper(),
        service=service,
    )


def setup_logging_from_config(
    cfg: "LingoSyncConfig", *, service: str = "lingosync-server"
) -> None:
    """根据 LingoSyncConfig 一键初始化日志系统。"""
    setup_logging(
        log_level=cfg.logging.level,
        log_format=cfg.logging.format,
        service=service,
    )
