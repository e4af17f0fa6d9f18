"""Tenant cache — raw key-value stores and the fail-soft read-through layer."""

from subfolio.cache.read_through import Envelope, ReadThroughCache, portfolio_key, tenant_key
from subfolio.cache.store import CacheStore, InMemoryCacheStore, RedisCacheStore

__all__ = [
    "CacheStore",
    "Envelope",
    "InMemoryCacheStore",
    "ReadThroughCache",
    "RedisCacheStore",
    "portfolio_key",
    "tenant_key",
]
