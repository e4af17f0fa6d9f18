"""ASGI middleware."""

from subfolio.middleware.host_rewrite import SubdomainRewriteMiddleware

__all__ = ["SubdomainRewriteMiddleware"]
