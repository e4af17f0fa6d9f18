"""Tenant resolution — host parsing and the cached slug lookup."""

from subfolio.resolution.host import HostResolver, strip_port
from subfolio.resolution.tenant import TenantResolver

__all__ = [
    "HostResolver",
    "TenantResolver",
    "strip_port",
]
