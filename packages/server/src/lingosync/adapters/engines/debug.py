# packages/server/src/lingosync/adapters/engines/debug.py
"""
提供一个用于开发和测试的调试翻译引擎。
"""

import asyncio

from lingosync.config import DebugEngineSettings
from lingosync_core.types import EngineError, EngineResult, EngineSuccess

from .base import BaseTranslationEngine


class DebugEngine(BaseTranslationEngine[DebugEngineSettings]):
    """输出确定性的伪译文；可配置为整体失败或对指定文本失败。"""

    CONFIG_MODEL = DebugEngineSettings

    async def _translate(self, text: str, source_lang: str, target_lang: str) -> EngineResult:
        # 让出一次事件循环，模拟真实的网络调用
        await asyncio.sleep(0)
        if self.config.mode == "FAIL" or text == self.config.fail_on_text:
            return EngineError(
                error_message="Debug engine forced to fail",
                is_retryable=self.config.fail_is_retryable,
            )
        return EngineSuccess(
            translated_text=f"[{target_lang}] {text}",
            confidence=self.config.confidence,
        )
