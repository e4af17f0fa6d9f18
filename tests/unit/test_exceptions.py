"""Unit tests — subfolio.core.exceptions"""

from __future__ import annotations

import pytest

from subfolio.core.exceptions import (
    AuthenticationError,
    CacheError,
    ConfigurationError,
    DirectoryError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    PortfolioNotFoundError,
    ProfileNotFoundError,
    SubdomainTakenError,
    SubfolioError,
    TenantNotFoundError,
)

pytestmark = pytest.mark.unit


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc",
        [
            InvalidInputError("bad"),
            SubdomainTakenError("acme"),
            TenantNotFoundError("acme"),
            PortfolioNotFoundError("p1"),
            AuthenticationError(),
            ForbiddenError("tenant", "t1"),
            ProfileNotFoundError("idp-1"),
            DirectoryError("insert", "boom"),
            CacheError("get", "subdomain:acme"),
            ConfigurationError("root_domain", "empty"),
        ],
    )
    def test_all_derive_from_base(self, exc):
        assert isinstance(exc, SubfolioError)

    def test_not_found_family(self):
        assert isinstance(TenantNotFoundError("x"), NotFoundError)
        assert isinstance(PortfolioNotFoundError("x"), NotFoundError)

    def test_missing_profile_is_an_authorization_failure(self):
        assert isinstance(ProfileNotFoundError("idp-1"), ForbiddenError)


class TestCodes:
    def test_codes_distinguish_validation_from_conflict(self):
        assert InvalidInputError("bad").code != SubdomainTakenError("acme").code

    def test_codes_are_stable(self):
        assert SubdomainTakenError("acme").code == "subdomain_taken"
        assert InvalidInputError("bad").code == "invalid_input"
        assert ProfileNotFoundError("x").code == "user_not_found"
        assert TenantNotFoundError("x").code == "tenant_not_found"


class TestMessages:
    def test_taken_message(self):
        exc = SubdomainTakenError("acme")
        assert exc.message == "This subdomain is already taken"
        assert exc.slug == "acme"

    def test_profile_not_found_message(self):
        exc = ProfileNotFoundError("idp-1")
        assert exc.message == "User not found"
        assert exc.external_id == "idp-1"

    def test_tenant_not_found_without_identifier(self):
        assert TenantNotFoundError().message == "Tenant not found"

    def test_str_includes_details(self):
        exc = DirectoryError("insert", "boom", details={"slug": "acme"})
        assert "details=" in str(exc)
        assert exc.operation == "insert"

    def test_str_without_details(self):
        assert str(AuthenticationError()) == "Authentication required"

    def test_repr(self):
        assert repr(InvalidInputError("bad")) == "InvalidInputError(message='bad')"

    def test_invalid_input_field(self):
        assert InvalidInputError("bad", field="icon").field == "icon"

    def test_cache_error_context(self):
        exc = CacheError("set", "subdomain:acme")
        assert exc.operation == "set"
        assert exc.key == "subdomain:acme"
