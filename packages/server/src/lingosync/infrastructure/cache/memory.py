# packages/server/src/lingosync/infrastructure/cache/memory.py
"""
内存缓存实现，用于测试环境或当 Redis 不可用时的备用方案。
"""

from __future__ import annotations

from typing import Any

from cachetools import TTLCache

from lingosync_core.interfaces import CacheHandler


class MemoryCacheHandler(CacheHandler):
    """
    基于 `cachetools.TTLCache` 的进程内缓存。
    TTL 在构造时统一设定，`set` 的 ttl 参数被忽略。
    """

    def __init__(
        self,
        key_prefix: str = "ls:cache:",
        maxsize: int = 10000,
        ttl: int = 86400,
        timer: Any = None,
    ):
        self._prefix = key_prefix
        if timer is None:
            self._cache: TTLCache[str, Any] = TTLCache(maxsize=maxsize, ttl=ttl)
        else:
            self._cache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Any | None:
        return self._cache.get(self._make_key(key))

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._cache[self._make_key(key)] = value

    async def delete(self, key: str) -> None:
        self._cache.pop(self._make_key(key), None)

    async def delete_prefix(self, prefix: str) -> int:
        full_prefix = self._make_key(prefix)
        keys = [k for k in list(self._cache.keys()) if k.startswith(full_prefix)]
        for key in keys:
            self._cache.pop(key, None)
        return len(keys)
