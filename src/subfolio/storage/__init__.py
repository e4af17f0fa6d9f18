"""Tenant directory backends for subfolio.

All backends implement :class:`~subfolio.storage.base.TenantDirectory` and
are fully interchangeable.

Backends
--------
:class:`~subfolio.storage.database.SQLAlchemyDirectory`
    Production backend.  Async SQLAlchemy 2.0 supporting PostgreSQL
    (asyncpg), SQLite (aiosqlite) and MySQL (aiomysql).

:class:`~subfolio.storage.memory.InMemoryDirectory`
    In-memory directory for tests and local development.

Example — testing::

    from subfolio.storage import InMemoryDirectory

    directory = InMemoryDirectory()
    await directory.insert_profile(profile)
    await directory.provision(tenant, portfolio)
"""

from subfolio.storage.base import TenantDirectory
from subfolio.storage.database import SQLAlchemyDirectory
from subfolio.storage.memory import InMemoryDirectory

__all__ = [
    "InMemoryDirectory",
    "SQLAlchemyDirectory",
    "TenantDirectory",
]
