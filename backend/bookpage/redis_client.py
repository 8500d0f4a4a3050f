# backend/bookpage/redis_client.py

from redis import Redis

from .config import settings

# Connection is lazy: nothing is opened until the first command
redis_client = Redis.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_timeout=settings.redis_socket_timeout,
    socket_connect_timeout=settings.redis_socket_timeout,
)


def get_redis() -> Redis | None:
    """FastAPI dependency: Redis client for the slot cache, or None when disabled."""
    if not settings.slots_cache_enabled:
        return None
    return redis_client
