"""Redis client with connection pooling and graceful fallback."""
import logging
from typing import Protocol

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class CacheUnavailableError(Exception):
    """
    Raised by a cache client that cannot serve a request.

    Never surfaced to API callers: readers treat it as a miss and recompute,
    writers log it and move on.
    """


class CacheClient(Protocol):
    """
    Minimal key-value capability the services depend on.

    Implementations may either swallow backend failures (returning a miss or
    False, as RedisClient does) or raise CacheUnavailableError.
    """

    async def get(self, key: str) -> bytes | str | None: ...

    async def set(self, key: str, value: str | bytes, ttl: int) -> bool: ...

    async def delete(self, *keys: str) -> bool: ...

    async def exists(self, key: str) -> bool: ...


class RedisClient:
    """Async Redis client with connection pooling and graceful fallback."""

    def __init__(
        self,
        url: str,
        enabled: bool = True,
        pool_size: int = 20,
        socket_timeout: float | None = None,
    ) -> None:
        self._url = url
        self._enabled = enabled
        self._pool_size = pool_size
        self._socket_timeout = socket_timeout
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Initialize connection pool and verify connectivity."""
        if not self._enabled:
            logger.info("Redis disabled by configuration")
            return
        try:
            self._pool = ConnectionPool.from_url(
                self._url,
                max_connections=self._pool_size,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_timeout,
            )
            self._client = Redis(connection_pool=self._pool)
            # Verify connection
            await self._client.ping()
            logger.info("Redis connected successfully")
        except RedisError as e:
            logger.warning("Redis connection failed: %s", e)
            self._client = None
            self._pool = None

    async def close(self) -> None:
        """Close connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._pool = None
            logger.info("Redis connection closed")

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._client is not None

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if not self._client:
            return False
        try:
            return await self._client.ping()
        except RedisError:
            return False

    async def get(self, key: str) -> bytes | None:
        """Get value, returns None if Redis unavailable."""
        if not self._client:
            return None
        try:
            return await self._client.get(key)
        except RedisError as e:
            logger.warning("Redis GET failed: %s", e)
            return None

    async def set(self, key: str, value: str | bytes, ttl: int) -> bool:
        """Set value with expiry, returns False if Redis unavailable."""
        if not self._client:
            return False
        try:
            await self._client.setex(key, ttl, value)
            return True
        except RedisError as e:
            logger.warning("Redis SETEX failed: %s", e)
            return False

    async def delete(self, *keys: str) -> bool:
        """Delete key(s), returns False if Redis unavailable."""
        if not self._client or not keys:
            return False
        try:
            await self._client.delete(*keys)
            return True
        except RedisError as e:
            logger.warning("Redis DELETE failed: %s", e)
            return False

    async def exists(self, key: str) -> bool:
        """Check key existence, returns False if Redis unavailable."""
        if not self._client:
            return False
        try:
            return bool(await self._client.exists(key))
        except RedisError as e:
            logger.warning("Redis EXISTS failed: %s", e)
            return False


# Global Redis client state using a container to avoid global statement
class _RedisState:
    """Container for global Redis client state."""

    client: RedisClient | None = None


_state = _RedisState()


def get_redis_client() -> RedisClient | None:
    """Get the global Redis client instance."""
    return _state.client


def set_redis_client(client: RedisClient | None) -> None:
    """Set the global Redis client instance."""
    _state.client = client


def get_cache_client() -> CacheClient:
    """
    FastAPI dependency for the cache client.

    Falls back to a disabled client (every read misses, every write is a
    no-op) when Redis was never started, e.g. in tests or one-off scripts.
    """
    client = get_redis_client()
    if client is None:
        return RedisClient("redis://unused", enabled=False)
    return client
