# packages/server/src/lingosync/application/services/_translation_cache.py
"""
译文缓存门面。

键为 `translation:{src}:{dst}:{sha256(text)}`。缓存只是优化：
后端不可用、超时或取回非字符串值时一律视为未命中并记录警告，从不抛出。
"""

from __future__ import annotations

import asyncio
import hashlib
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from lingosync_core.interfaces import CacheHandler

logger = structlog.get_logger(__name__)

DEFAULT_TTL = 86400


class TranslationCache:
    def __init__(
        self,
        handler: "CacheHandler | None",
        ttl: int = DEFAULT_TTL,
        timeout: float = 2.0,
    ):
        self._handler = handler
        self._ttl = ttl
        self._timeout = timeout

    @staticmethod
    def make_key(text: str, source_lang: str, target_lang: str) -> str:
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return f"translation:{source_lang}:{target_lang}:{digest}"

    async def get(self, text: str, source_lang: str, target_lang: str) -> str | None:
        if self._handler is None:
            return None
        key = self.make_key(text, source_lang, target_lang)
        try:
            value = await asyncio.wait_for(self._handler.get(key), timeout=self._timeout)
        except Exception as e:
            logger.warning("译文缓存读取失败，按未命中处理", key=key, error=str(e))
            return None
        if value is None:
            return None
        if not isinstance(value, str) or not value:
            logger.warning("译文缓存值无效，按未命中处理", key=key, value_type=type(value).__name__)
            return None
        logger.debug("译文缓存命中", key=key)
        return value

    async def put(self, text: str, source_lang: str, target_lang: str, value: str) -> None:
        if self._handler is None or not value:
            return
        key = self.make_key(text, source_lang, target_lang)
        try:
            await asyncio.wait_for(
                self._handler.set(key, value, ttl=self._ttl), timeout=self._timeout
            )
        except Exception as e:
            logger.warning("译文缓存写入失败", key=key, error=str(e))

    async def clear(self, source_lang: str, target_lang: str) -> int:
        """删除某一语言对的全部缓存译文，返回删除数量。后端错误向上抛出。"""
        if self._handler is None:
            return 0
        deleted = await self._handler.delete_prefix(f"translation:{source_lang}:{target_lang}:")
        logger.info(
            "译文缓存已清理", source_lang=source_lang, target_lang=target_lang, deleted=deleted
        )
        return deleted
