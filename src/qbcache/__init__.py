"""qbcache -- a two-tier response cache for QuickBase API clients.

An API client asks the cache before issuing a request and hands fresh
responses back afterwards::

    from qbcache import QBCache

    cache = QBCache(location="/tmp/qb-cache")
    schema = await cache.get_or_fetch(
        "API_GetSchema", {"dbid": "bqx7xre7"}, lambda: client.get_schema("bqx7xre7")
    )

Modules:
    cache: The cache engine and its key, policy, and storage helpers.
    models: Pydantic models for settings and on-disk entries.
    config: XDG-aware settings resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes for the command line.
    output: stdout/stderr formatting for the command line.
    app: Typer application and ``qbcache`` entry point.
"""

__version__ = "0.3.0"

from qbcache.cache import MISS, CacheResult, QBCache  # noqa: E402
from qbcache.models import NEVER_EXPIRE, CacheEntry, CacheSettings  # noqa: E402

__all__ = [
    "MISS",
    "NEVER_EXPIRE",
    "CacheEntry",
    "CacheResult",
    "CacheSettings",
    "QBCache",
]
