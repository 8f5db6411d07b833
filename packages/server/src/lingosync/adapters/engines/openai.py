# packages/server/src/lingosync/adapters/engines/openai.py
"""
OpenAI 兼容的 chat-completions 翻译引擎，基于官方 `openai` SDK。
"""

from __future__ import annotations

import httpx
import structlog
from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)

from lingosync.config import OpenAISettings
from lingosync_core.exceptions import ConfigurationError
from lingosync_core.types import EngineError, EngineResult, EngineSuccess

from .base import BaseTranslationEngine

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a professional e-commerce translator. Translate the user's text from "
    "{source} to {target}. Preserve HTML tags, placeholders and line breaks exactly. "
    "Reply with the translation only."
)

# 除 429 与 5xx 外，请求超时与冲突也可以重试
_RETRYABLE_STATUS = frozenset({408, 409})


class OpenAIEngine(BaseTranslationEngine[OpenAISettings]):
    """使用 OpenAI API 的翻译引擎实现。"""

    CONFIG_MODEL = OpenAISettings

    def __init__(self, config: OpenAISettings, http_client: httpx.AsyncClient | None = None):
        super().__init__(config)
        if config.api_key is None:
            raise ConfigurationError("OpenAI 引擎需要设置 LINGOSYNC_OPENAI__API_KEY")
        self.client = AsyncOpenAI(
            api_key=config.api_key.get_secret_value(),
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
            max_retries=config.max_retries,
            http_client=http_client,
        )

    async def close(self) -> None:
        if not self.client.is_closed():
            await self.client.close()
            logger.info("OpenAI 引擎的 HTTP 客户端已关闭。")
        await super().close()

    async def _translate(self, text: str, source_lang: str, target_lang: str) -> EngineResult:
        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                temperature=self.config.temperature,
                messages=[
                    {
                        "role": "system",
                        "content": SYSTEM_PROMPT.format(source=source_lang, target=target_lang),
                    },
                    {"role": "user", "content": text},
                ],
            )
        except (RateLimitError, InternalServerError) as e:
            logger.warning("OpenAI 返回暂时性错误", status=e.status_code)
            return EngineError(
                error_message=f"OpenAI HTTP {e.status_code}: {e.message}", is_retryable=True
            )
        except APIStatusError as e:
            retryable = e.status_code in _RETRYABLE_STATUS
            logger.warning("OpenAI 返回错误状态", status=e.status_code, retryable=retryable)
            return EngineError(
                error_message=f"OpenAI HTTP {e.status_code}: {e.message}",
                is_retryable=retryable,
            )
        except APIConnectionError as e:
            # 也包括 APITimeoutError
            return EngineError(error_message=f"OpenAI 请求失败: {e}", is_retryable=True)

        choices = getattr(response, "choices", None)
        if not choices:
            return EngineError(
                error_message="OpenAI 响应中没有可用的 choices。", is_retryable=True
            )
        translated = (choices[0].message.content or "").strip()
        if not translated:
            return EngineError(error_message="OpenAI 返回了空译文", is_retryable=True)
        return EngineSuccess(translated_text=translated, confidence=self.config.confidence)
