"""Raw key-value cache stores.

A :class:`CacheStore` only moves strings in and out of a keyspace with an
optional TTL.  It knows nothing about tenants; encoding, validation and the
fail-soft policy live in :mod:`subfolio.cache.read_through`.

Backends
--------
:class:`RedisCacheStore`
    ``redis.asyncio`` client with bounded retry (capped exponential backoff)
    on connection and timeout errors.  Failures that survive the retries are
    raised as :class:`~subfolio.core.exceptions.CacheError`.

:class:`InMemoryCacheStore`
    Monotonic-clock TTL dictionary for tests and local development.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, NamedTuple, Protocol, runtime_checkable

from redis import asyncio as aioredis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from subfolio.core.exceptions import CacheError

if TYPE_CHECKING:
    from subfolio.core.config import SubfolioConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheStore(Protocol):
    """Minimal async key-value interface the read-through cache depends on."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int | None = None) -> None: ...

    async def delete(self, *keys: str) -> int: ...

    async def close(self) -> None: ...


##################
# Redis backend  #
##################


class RedisCacheStore:
    """Cache store backed by a ``redis.asyncio`` client.

    Args:
        redis_url: Redis connection URL (e.g. ``redis://localhost:6379/0``).
        key_prefix: Optional namespace prepended to every key.
        retries: Retries per command on connection or timeout errors.
        backoff_base: Base delay of the exponential backoff (seconds).
        backoff_cap: Upper bound of a single delay (seconds).
        socket_timeout: Connect and read timeout (seconds).
        client: Pre-built client.  When given, the URL and retry settings
            are ignored; used by tests to inject an ``AsyncMock``.

    Example::

        store = RedisCacheStore("redis://localhost:6379/0", retries=3)
        await store.set("subdomain:acme", payload, ttl=3600)
        await store.close()
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        key_prefix: str = "",
        retries: int = 3,
        backoff_base: float = 0.05,
        backoff_cap: float = 2.0,
        socket_timeout: float = 1.0,
        client: Any = None,
    ) -> None:
        self._prefix = key_prefix
        if client is not None:
            self._redis: Any = client
        else:
            self._redis = aioredis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
                retry=Retry(ExponentialBackoff(cap=backoff_cap, base=backoff_base), retries),
                retry_on_error=[RedisConnectionError, RedisTimeoutError],
            )
        logger.info(
            "RedisCacheStore initialised retries=%d prefix=%r", retries, key_prefix
        )

    @classmethod
    def from_config(cls, config: SubfolioConfig) -> RedisCacheStore:
        """Build a store from the cache settings of *config*."""
        if not config.redis_url:
            msg = "RedisCacheStore.from_config requires config.redis_url"
            raise ValueError(msg)
        return cls(
            config.redis_url,
            key_prefix=config.cache_key_prefix,
            retries=config.cache_retry_attempts,
            backoff_base=config.cache_retry_backoff_base,
            backoff_cap=config.cache_retry_backoff_cap,
            socket_timeout=config.cache_socket_timeout,
        )

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        try:
            value = await self._redis.get(self._key(key))
        except (RedisError, OSError) as exc:
            raise CacheError("get", key, details={"error": str(exc)}) from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        try:
            if ttl is None:
                await self._redis.set(self._key(key), value)
            else:
                await self._redis.set(self._key(key), value, ex=ttl)
        except (RedisError, OSError) as exc:
            raise CacheError("set", key, details={"error": str(exc)}) from exc

    async def delete(self, *keys: str) -> int:
        """Delete *keys* in a single ``DEL`` command and return how many existed."""
        if not keys:
            return 0
        try:
            return int(await self._redis.delete(*(self._key(k) for k in keys)))
        except (RedisError, OSError) as exc:
            raise CacheError("delete", ",".join(keys), details={"error": str(exc)}) from exc

    async def ping(self) -> bool:
        """Return ``True`` when the server answers ``PING``."""
        try:
            return bool(await self._redis.ping())
        except (RedisError, OSError) as exc:
            logger.warning("Redis ping failed: %s", exc)
            return False

    async def close(self) -> None:
        """Close the connection pool."""
        await self._redis.aclose()
        logger.info("RedisCacheStore closed")


######################
# In-memory backend  #
######################


class _Entry(NamedTuple):
    value: str
    expires_at: float | None


class InMemoryCacheStore:
    """Process-local cache store with per-entry TTL.

    Expired entries are dropped lazily on access.  ``asyncio`` tasks run on a
    single thread, so the dictionary needs no lock.
    """

    def __init__(self) -> None:
        self._data: dict[str, _Entry] = {}

    async def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and time.monotonic() >= entry.expires_at:
            del self._data[key]
            return None
        return entry.value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = time.monotonic() + ttl if ttl is not None else None
        self._data[key] = _Entry(value, expires_at)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                removed += 1
        return removed

    async def close(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        """Return the currently stored keys (expired ones included)."""
        return list(self._data)


__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
