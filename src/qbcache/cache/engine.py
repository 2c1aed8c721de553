"""Two-tier (memory + disk) cache for QuickBase API responses.

:class:`QBCache` keeps a dict of :class:`~qbcache.models.CacheEntry`
objects in front of a directory of ``<key>.json`` files:

* :meth:`QBCache.load` serves from memory first, then from disk, and evicts
  an expired entry from both tiers as soon as it sees one.
* :meth:`QBCache.save` writes the file first and only then mirrors the
  entry into memory, so memory never claims what disk does not hold.
* :meth:`QBCache.clear` drops the entry from both tiers.

Only APIs enabled in :attr:`~qbcache.models.CacheSettings.allowed` take
part; for any other API, ``load`` misses and ``save``/``clear`` do nothing.

The engine takes no locks. Concurrent calls for the same key race at the
filesystem and the last write to finish wins in both tiers.

Example::

    cache = QBCache(location="/tmp/qb-cache")

    hit = await cache.load("API_GetSchema", {"dbid": "bqx7xre7"})
    if not hit:
        schema = await client.api("API_GetSchema", {"dbid": "bqx7xre7"})
        await cache.save("API_GetSchema", {"dbid": "bqx7xre7"}, schema)
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from qbcache.cache.keys import KEY_SUFFIX, derive_key
from qbcache.cache.policy import compute_expiry, is_allowed, is_valid, now_ms
from qbcache.cache.store import FileStore
from qbcache.exceptions import EntryNotFound, SerializationError
from qbcache.models import CacheEntry, CacheSettings

logger = logging.getLogger(__name__)

Options = Optional[Mapping[str, Any]]


@dataclass(frozen=True)
class CacheResult:
    """Outcome of :meth:`QBCache.load`.

    Truthy on a hit. ``data`` is a private copy of the cached payload, so a
    cached JSON ``null`` is still a hit with ``data=None``.
    """

    hit: bool
    data: Any = None

    def __bool__(self) -> bool:
        return self.hit


MISS = CacheResult(hit=False)


class QBCache:
    """Memory-over-disk response cache keyed by API name and options.

    Args:
        settings: Fully resolved settings. When omitted, defaults are used
            with *overrides* deep-merged over them.
        store: File access layer; a fresh :class:`FileStore` by default.
        clock: Returns the current time in Unix milliseconds. Injected by
            tests to step across TTL boundaries.
        **overrides: Settings fields (``location``, ``namespace``,
            ``allowed``, ``data_timeouts``/``dataTimeouts``). Ignored when
            *settings* is given.
    """

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        *,
        store: Optional[FileStore] = None,
        clock: Callable[[], int] = now_ms,
        **overrides: Any,
    ) -> None:
        if settings is None:
            from qbcache.config import build_settings

            settings = build_settings(overrides)
        self._settings = settings
        self._store = store or FileStore()
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    # ------------------------------------------------------------------ #
    # Keys and gating
    # ------------------------------------------------------------------ #

    def is_allowed(self, api: str) -> bool:
        """Whether responses from *api* may be cached at all."""
        return is_allowed(self._settings, api)

    def get_cache_key(self, api: str, options: Options = None) -> str:
        """Return the key (and file name) for *api* called with *options*."""
        return derive_key(self._settings.namespace, api, options)

    def path_for(self, api: str, options: Options = None) -> Path:
        """Return the cache file path for *api* called with *options*."""
        return self._path(self.get_cache_key(api, options))

    def _path(self, key: str) -> Path:
        return Path(self._settings.location) / key

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    async def load(self, api: str, options: Options = None) -> CacheResult:
        """Look up the cached response for *api* called with *options*.

        Returns:
            A hit carrying a deep copy of the payload, or :data:`MISS` when
            the API is not cacheable, nothing is stored, or the entry has
            expired (in which case it is removed from memory and disk).

        Raises:
            StorageError: If the cache file exists but cannot be read or an
                expired file cannot be deleted.
            SerializationError: If the cache file is corrupt.
        """
        if not self.is_allowed(api):
            return MISS

        key = self.get_cache_key(api, options)
        path = self._path(key)

        entry = self._cache.get(key)
        if entry is not None:
            if is_valid(entry, self._clock()):
                logger.debug("Memory hit for %s (%s)", api, key)
                return CacheResult(hit=True, data=copy.deepcopy(entry.data))

            logger.debug("Memory entry for %s expired, evicting %s", api, key)
            self._cache.pop(key, None)
            await self._store.remove(path)
            return MISS

        try:
            raw = await self._store.read(path)
        except EntryNotFound:
            logger.debug("Miss for %s (%s)", api, key)
            return MISS

        entry = self._decode(raw, path)
        if not is_valid(entry, self._clock()):
            logger.debug("Disk entry for %s expired, removing %s", api, key)
            await self._store.remove(path)
            return MISS

        self._cache[key] = entry
        logger.debug("Disk hit for %s (%s)", api, key)
        return CacheResult(hit=True, data=copy.deepcopy(entry.data))

    async def save(
        self,
        api: str,
        options: Options,
        data: Any,
        ttl: Optional[int] = None,
    ) -> bool:
        """Store *data* as the response for *api* called with *options*.

        Args:
            api: QuickBase API name.
            options: Request options used to derive the key.
            data: JSON-serialisable payload. Values pydantic can render
                as JSON (datetimes, tuples, non-string dict keys) are
                stored in their JSON form, and both tiers serve that form.
            ttl: Lifetime in milliseconds, ``-1`` to never expire, or
                ``None`` for the API's default from the settings.

        Returns:
            ``True`` once written, ``False`` if *api* is not cacheable.

        Raises:
            InvalidUsageError: If *ttl* is not an integer.
            SerializationError: If *data* is not JSON-serialisable.
            StorageError: If the file cannot be written. Memory is left as
                it was.
        """
        if not self.is_allowed(api):
            logger.debug("Not caching %s: not in allowlist", api)
            return False

        key = self.get_cache_key(api, options)
        entry = CacheEntry(
            exp=compute_expiry(self._settings, api, self._clock(), ttl),
            data=data,
        )
        try:
            raw = entry.model_dump_json().encode("utf-8")
        except PydanticSerializationError as exc:
            raise SerializationError(f"Cannot serialise {api} payload: {exc}") from exc

        await self._store.write(self._path(key), raw)
        # Memory holds what a later disk read would produce, not the caller's object.
        entry = CacheEntry.model_validate_json(raw)
        self._cache[key] = entry
        logger.debug("Saved %s (%s), exp=%s", api, key, entry.exp)
        return True

    async def clear(self, api: str, options: Options = None) -> bool:
        """Remove the cached response for *api* called with *options*.

        Returns:
            ``True`` once removed (or already absent), ``False`` if *api*
            is not cacheable.

        Raises:
            StorageError: If the cache file exists but cannot be deleted.
        """
        if not self.is_allowed(api):
            return False

        key = self.get_cache_key(api, options)
        self._cache.pop(key, None)
        await self._store.remove(self._path(key))
        logger.debug("Cleared %s (%s)", api, key)
        return True

    async def get_or_fetch(
        self,
        api: str,
        options: Options,
        fetch: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """Return the cached response, or await *fetch* and cache its result.

        This is the call sequence an API client performs around a real
        request: load, and on a miss fetch fresh data and save it.
        """
        cached = await self.load(api, options)
        if cached:
            return cached.data

        data = await fetch()
        await self.save(api, options, data, ttl)
        return data

    # ------------------------------------------------------------------ #
    # Inspection
    # ------------------------------------------------------------------ #

    async def disk_keys(self) -> list[str]:
        """Return the keys of all cache files currently in the location."""
        return await self._store.scan(Path(self._settings.location), KEY_SUFFIX)

    async def read_entry(self, key: str) -> Optional[CacheEntry]:
        """Read the entry stored under *key* straight from disk.

        Neither tier is modified and expiry is not applied.

        Returns:
            The entry, or ``None`` if no file exists for *key*.
        """
        path = self._path(key)
        try:
            raw = await self._store.read(path)
        except EntryNotFound:
            return None
        return self._decode(raw, path)

    def forget(self) -> None:
        """Drop every entry from the memory tier, leaving disk untouched."""
        self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return a summary of this engine.

        Returns:
            A ``dict`` with ``location`` (str path), ``namespace`` (str),
            and ``memory_entries`` (int).
        """
        return {
            "location": str(self._settings.location),
            "namespace": str(self._settings.namespace),
            "memory_entries": len(self._cache),
        }

    @staticmethod
    def _decode(raw: bytes, path: Path) -> CacheEntry:
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as exc:
            raise SerializationError(f"Corrupt cache file {path}: {exc}") from exc
