"""Services for the RED Atlas dashboard."""

from .cache import Cache, CacheStatus
from .dashboard import Dashboard, DataSource, Providers, build_providers
from .errors import ColdMissError, NotConfiguredError, UpstreamFetchError

__all__ = [
    "Cache",
    "CacheStatus",
    "Dashboard",
    "DataSource",
    "Providers",
    "build_providers",
    "ColdMissError",
    "NotConfiguredError",
    "UpstreamFetchError",
]
