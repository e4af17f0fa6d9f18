"""Unit tests — subfolio.utils.db_compat"""

from __future__ import annotations

import pytest

from subfolio.utils.db_compat import DbDialect, detect_dialect, requires_static_pool

pytestmark = pytest.mark.unit


class TestDetectDialect:
    @pytest.mark.parametrize(
        ("url", "dialect"),
        [
            ("postgresql+asyncpg://u:p@h/db", DbDialect.POSTGRESQL),
            ("postgresql://u:p@h/db", DbDialect.POSTGRESQL),
            ("sqlite+aiosqlite:///:memory:", DbDialect.SQLITE),
            ("mysql+aiomysql://u:p@h/db", DbDialect.MYSQL),
            ("mariadb+aiomysql://u:p@h/db", DbDialect.MYSQL),
            ("SQLITE+AIOSQLITE:///x.db", DbDialect.SQLITE),
        ],
    )
    def test_known_schemes(self, url, dialect):
        assert detect_dialect(url) is dialect

    @pytest.mark.parametrize("url", ["oracle://h/db", "not a url", ""])
    def test_unknown(self, url):
        assert detect_dialect(url) is DbDialect.UNKNOWN


class TestStaticPool:
    def test_only_sqlite(self):
        assert requires_static_pool(DbDialect.SQLITE) is True
        assert requires_static_pool(DbDialect.POSTGRESQL) is False
        assert requires_static_pool(DbDialect.MYSQL) is False
