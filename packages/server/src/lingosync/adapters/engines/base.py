# packages/server/src/lingosync/adapters/engines/base.py
"""
定义了所有翻译引擎的抽象基类。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel

from lingosync_core.types import EngineError, EngineResult

_ConfigType = TypeVar("_ConfigType", bound=BaseModel)


class BaseTranslationEngine(ABC, Generic[_ConfigType]):
    """翻译引擎的纯异步抽象基类：`translate(text, src, dst) -> EngineResult`。"""

    CONFIG_MODEL: type[_ConfigType]
    VERSION: str = "1.0.0"

    def __init__(self, config: _ConfigType):
        self.config = config
        self.initialized = False

    @classmethod
    def name(cls) -> str:
        """从类名自动推断引擎的名称。"""
        return cls.__name__.removesuffix("Engine").lower()

    async def initialize(self) -> None:
        """引擎的异步初始化钩子，用于设置连接池等。"""
        self.initialized = True

    async def close(self) -> None:
        """引擎的异步关闭钩子，用于安全释放资源。"""
        self.initialized = False

    @abstractmethod
    async def _translate(self, text: str, source_lang: str, target_lang: str) -> EngineResult:
        """[子类实现] 真正执行翻译的逻辑。"""
        raise NotImplementedError

    async def translate(
        self, text: str, source_lang: str | None, target_lang: str
    ) -> EngineResult:
        """[公共 API] 异步翻译单条文本。引擎内部异常统一转换为可重试的 EngineError。"""
        if not source_lang:
            return EngineError(
                error_message=f"引擎 '{self.name()}' 需要提供源语言。",
                is_retryable=False,
            )
        try:
            return await self._translate(text, source_lang, target_lang)
        except Exception as e:
            return EngineError(
                error_message=f"引擎执行时发生未知异常: {e}", is_retryable=True
            )
