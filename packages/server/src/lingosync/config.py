# packages/server/src/lingosync/config.py
"""
LingoSync Server 配置（Pydantic v2）

- 纯粹的数据模型，环境变量以 `LINGOSYNC_` 为前缀，嵌套字段以 `__` 分隔，
  例如 `LINGOSYNC_REDIS__URL`、`LINGOSYNC_QUEUE__MAX_ATTEMPTS`。
- .env 文件的加载由 bootstrap.create_app_config 负责。
"""

from __future__ import annotations

from typing import Literal, Optional

import langcodes
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine.url import make_url

# ===================== 子模型 =====================


class DatabaseSettings(BaseModel):
    """主库（运行期异步驱动）"""

    url: str = Field(
        default="sqlite+aiosqlite:///lingosync.db",
        description="异步 DSN（sqlite+aiosqlite / postgresql+asyncpg）",
    )
    echo: bool = Field(default=False, description="SQLAlchemy echo（调试）")

    @field_validator("url")
    @classmethod
    def _validate_async_driver(cls, v: str) -> str:
        allowed = {"sqlite+aiosqlite", "postgresql+asyncpg"}
        try:
            drv = make_url(v).drivername.lower()
        except Exception as e:
            raise ValueError(f"非法数据库 URL：{v!r}（{e}）") from e
        if drv not in allowed:
            raise ValueError(
                f"不支持的运行期数据库驱动：{drv!r}，仅允许 {', '.join(sorted(allowed))}"
            )
        return v


class CacheSettings(BaseModel):
    ttl: int = Field(default=86400, ge=1, description="译文缓存 TTL（秒），默认 24 小时")
    maxsize: int = Field(default=10000, ge=1, description="内存缓存的最大条目数")
    timeout: float = Field(default=2.0, gt=0, description="单次缓存访问超时（秒）")


class RedisSettings(BaseModel):
    url: Optional[str] = Field(default=None)
    key_prefix: str = Field(default="ls:dev:")
    cache: CacheSettings = Field(default_factory=CacheSettings)


class QueueSettings(BaseModel):
    mode: Literal["redis", "inline"] = Field(
        default="redis",
        description="redis: 尝试连接 broker，不可达时降级为内联；inline: 强制内联执行",
    )
    prefix: str = Field(default="ls:queue:")
    consumer_group: str = Field(default="lingosync")
    max_attempts: int = Field(default=3, ge=1)
    backoff_base: float = Field(default=2.0, gt=0)
    job_timeout: float = Field(default=120.0, gt=0)
    translation_concurrency: int = Field(default=4, ge=1)
    sync_concurrency: int = Field(default=2, ge=1)
    webhook_concurrency: int = Field(default=4, ge=1)
    block_ms: int = Field(default=2000, ge=0)
    claim_idle_ms: int = Field(default=300_000, ge=1000)


class WorkerSettings(BaseModel):
    poll_interval: float = Field(default=2.0, gt=0)
    reclaim_interval: float = Field(default=60.0, gt=0)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    format: Literal["console", "json"] = Field(default="console")


class OrchestratorSettings(BaseModel):
    batch_concurrency: int = Field(default=5, ge=1)
    provider_timeout: float = Field(default=30.0, gt=0)
    sync_timeout: float = Field(default=60.0, gt=0)
    failed_retry_cooldown: float = Field(
        default=300.0, gt=0, description="failed 记录首次重试前的冷却秒数"
    )
    max_retry_cooldown: float = Field(default=21600.0, gt=0)
    default_batch_limit: int = Field(default=10, ge=1)
    import_limit: int = Field(default=50, ge=1)


class WebhookSettings(BaseModel):
    shared_secret: Optional[SecretStr] = Field(
        default=None, description="平台 App 的 API secret，用于 HMAC 校验"
    )


class OpenAISettings(BaseModel):
    api_key: Optional[SecretStr] = Field(default=None)
    base_url: str = Field(default="https://api.openai.com/v1")
    model: str = Field(default="gpt-4o-mini")
    temperature: float = Field(default=0.1, ge=0)
    timeout: float = Field(default=30.0, gt=0)
    connect_timeout: float = Field(default=5.0, gt=0)
    max_retries: int = Field(default=2, ge=0, description="SDK 内部的重试次数")
    confidence: float = Field(default=0.85, ge=0, le=1)


class DebugEngineSettings(BaseModel):
    mode: Literal["SUCCESS", "FAIL"] = Field(default="SUCCESS")
    fail_on_text: Optional[str] = Field(default=None)
    fail_is_retryable: bool = Field(default=True)
    confidence: float = Field(default=0.95, ge=0, le=1)


class ShopifySettings(BaseModel):
    api_version: str = Field(default="2024-10")
    timeout: float = Field(default=30.0, gt=0)


class CatalogSettings(BaseModel):
    provider: Literal["shopify", "memory"] = Field(default="memory")


# ===================== 顶层配置 =====================
class LingoSyncConfig(BaseSettings):
    """
    LingoSync 核心配置模型。
    """

    # --- 服务器通用 ---
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000

    # --- 领域子配置 ---
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    debug_engine: DebugEngineSettings = Field(default_factory=DebugEngineSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    shopify: ShopifySettings = Field(default_factory=ShopifySettings)

    # --- 连接池高级参数 ---
    db_pool_size: Optional[int] = None
    db_max_overflow: Optional[int] = None
    db_pool_timeout: int = 30
    db_pool_recycle: Optional[int] = None
    db_pool_pre_ping: bool = True

    # --- 语言/引擎 ---
    default_source_lang: str = "en"
    active_engine: Literal["debug", "openai"] = "debug"

    @field_validator("default_source_lang")
    @classmethod
    def _validate_lang(cls, v: str) -> str:
        if not v or not langcodes.tag_is_valid(v):
            raise ValueError(f"非法语言代码: {v}")
        return langcodes.standardize_tag(v)

    # --- Pydantic v2 设置 ---
    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="LINGOSYNC_",
        case_sensitive=False,
        extra="ignore",
        env_file_encoding="utf-8",
    )
