"""Memory-over-disk response caching for QuickBase API calls.

This package provides :class:`QBCache`, which stores API responses as one
JSON file per cache key and mirrors them in memory for the lifetime of the
engine. Which APIs are cached, where, and for how long is controlled by
:class:`~qbcache.models.CacheSettings`.

Building blocks:
    keys: Version-5 UUID key derivation from API name and options.
    policy: Allowlist gate and TTL evaluation.
    store: Asynchronous whole-file read/write/remove.
    engine: The :class:`QBCache` orchestrator.
"""

from qbcache.cache.engine import MISS, CacheResult, QBCache
from qbcache.cache.keys import derive_key
from qbcache.cache.store import FileStore

__all__ = ["MISS", "CacheResult", "FileStore", "QBCache", "derive_key"]
