from ._client import close_redis_client, create_redis_client, ping_redis
from .cache import RedisCacheHandler

__all__ = [
    "RedisCacheHandler",
    "close_redis_client",
    "create_redis_client",
    "ping_redis",
]
