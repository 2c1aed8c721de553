"""Canonical Pydantic models shared across qbcache modules.

Two shapes live here:

* :class:`CacheSettings` -- the per-engine configuration (storage location,
  key namespace, allowlist table, default TTLs). Loaded and saved by
  :mod:`qbcache.config`.
* :class:`CacheEntry` -- one cached API response exactly as it is written to
  ``<key>.json``: ``{"exp": <ms timestamp or -1>, "data": <payload>}``.

Both models are frozen. A save replaces an entry wholesale; nothing in the
package mutates one in place.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


NEVER_EXPIRE = -1
"""``exp`` value (and TTL override) meaning the entry never goes stale."""

DEFAULT_NAMESPACE = uuid.UUID("79aa6464-6aaa-459c-8c76-8451761bad49")

DEFAULT_ALLOWED: dict[str, bool] = {
    "API_DoQuery": False,
    "API_DoQueryCount": False,
    "API_GetSchema": True,
    "API_GetUserRole": True,
}
"""Operations eligible for caching. Every other QuickBase call is never cached."""

DEFAULT_DATA_TIMEOUTS: dict[str, int] = {
    "API_DoQuery": 300,
    "API_DoQueryCount": 300,
    "API_GetSchema": 604800,
    "API_GetUserRole": 604800,
}
"""Default time-to-live per operation, in milliseconds."""


def _default_location() -> Path:
    from qbcache.config import get_cache_dir

    return get_cache_dir()


class CacheSettings(BaseModel):
    """Configuration consulted by :class:`~qbcache.cache.engine.QBCache` on every call.

    Constructed once per engine and never changed afterwards. The camelCase
    spelling ``dataTimeouts`` is accepted on input so that option objects
    written for the JavaScript client load unchanged.

    Example::

        CacheSettings(
            location="/var/cache/qb",
            allowed={"API_DoQuery": True},
            data_timeouts={"API_DoQuery": 60_000},
        )
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    location: Path = Field(
        default_factory=_default_location,
        description="Directory holding one <key>.json file per cache entry",
    )
    namespace: uuid.UUID = Field(
        default=DEFAULT_NAMESPACE,
        description="UUID namespace seeding the version-5 key derivation",
    )
    allowed: dict[str, bool] = Field(
        default_factory=lambda: dict(DEFAULT_ALLOWED),
        description="Operation name -> whether its responses may be cached",
    )
    data_timeouts: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_DATA_TIMEOUTS),
        alias="dataTimeouts",
        description="Operation name -> default TTL in milliseconds",
    )

    @field_validator("data_timeouts")
    @classmethod
    def _check_timeouts(cls, value: dict[str, int]) -> dict[str, int]:
        for api, ttl in value.items():
            if ttl < 0 and ttl != NEVER_EXPIRE:
                raise ValueError(
                    f"TTL for {api} must be >= 0 or {NEVER_EXPIRE}, got {ttl}"
                )
        return value

    def default_ttl(self, api: str) -> int:
        """Return the default TTL for *api*, ``0`` when the table has no entry."""
        return self.data_timeouts.get(api, 0)


class CacheEntry(BaseModel):
    """A single cached payload and its absolute expiry.

    ``exp`` is a millisecond Unix timestamp, or :data:`NEVER_EXPIRE`.
    ``data`` is whatever JSON-serialisable value the API client handed to
    :meth:`~qbcache.cache.engine.QBCache.save`; it is required so that a
    truncated file is reported as corrupt rather than served as ``None``.
    """

    model_config = ConfigDict(frozen=True)

    exp: int
    data: Any

    @property
    def never_expires(self) -> bool:
        return self.exp == NEVER_EXPIRE
