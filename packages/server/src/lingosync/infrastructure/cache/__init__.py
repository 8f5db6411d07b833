from .factory import create_cache_handler
from .memory import MemoryCacheHandler

__all__ = ["MemoryCacheHandler", "create_cache_handler"]
