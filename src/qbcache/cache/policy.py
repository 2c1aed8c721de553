"""Allowlist gate and TTL evaluation.

Both checks are pure functions of their inputs; the engine calls them on
every operation.
"""

from __future__ import annotations

import time
from typing import Optional

from qbcache.exceptions import InvalidUsageError
from qbcache.models import NEVER_EXPIRE, CacheEntry, CacheSettings


def now_ms() -> int:
    """Current wall-clock time as integer Unix milliseconds."""
    return int(time.time() * 1000)


def is_allowed(settings: CacheSettings, api: str) -> bool:
    """Return ``True`` only if *api* is listed in ``settings.allowed`` and enabled."""
    return settings.allowed.get(api, False) is True


def is_valid(entry: CacheEntry, now: int) -> bool:
    """Return ``True`` if *entry* may still be served at *now* (inclusive)."""
    return entry.exp == NEVER_EXPIRE or entry.exp >= now


def compute_expiry(
    settings: CacheSettings,
    api: str,
    now: int,
    ttl: Optional[int] = None,
) -> int:
    """Return the ``exp`` value for an entry saved at *now*.

    Args:
        settings: Supplies the per-API default TTL.
        api: The API whose default applies when *ttl* is ``None``.
        now: Save time in Unix milliseconds.
        ttl: Override in milliseconds, :data:`~qbcache.models.NEVER_EXPIRE`,
            or ``None`` for the default.

    Raises:
        InvalidUsageError: If *ttl* is not an integer.
    """
    if ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, int)):
        raise InvalidUsageError(f"TTL must be an integer number of milliseconds, got {ttl!r}")
    if ttl is None:
        ttl = settings.default_ttl(api)
    if ttl == NEVER_EXPIRE:
        return NEVER_EXPIRE
    return now + ttl
