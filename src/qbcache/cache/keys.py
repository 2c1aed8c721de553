"""Deterministic cache keys for QuickBase API calls.

A key is a version-5 UUID computed from the settings namespace and a
``-``-joined list of parts, followed by ``.json``::

    uuid5(namespace, "API_DoQuery-bqx7xre7-12-3.6.7") + ".json"

The parts always start with the API name and the database id (``main`` when
the options carry none). :data:`KEY_FIELDS` then lists which option values
are appended for each API, in order. Absent options are skipped, never
padded, and APIs missing from the table contribute nothing extra. The
allowlist is not consulted here, so every API name yields a key.

Option values are rendered by :func:`_part_text`: booleans and lists the
way a JavaScript client joins them, mappings as sorted-key JSON so that
equal mappings built in a different order still share a key.
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Mapping, Optional

DEFAULT_DBID = "main"
KEY_SEPARATOR = "-"
KEY_SUFFIX = ".json"

# Each group is a tuple of alternatives; the first one present is used.
KEY_FIELDS: dict[str, tuple[tuple[str, ...], ...]] = {
    "API_DoQuery": (("qid", "query"), ("clist",), ("slist",), ("options",)),
    "API_DoQueryCount": (("qid", "query"), ("clist",), ("slist",), ("options",)),
    "API_GetUserRole": (("userid",),),
    "API_GetSchema": (),
}


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _part_text(value: Any) -> str:
    """Render one option value as key text.

    Booleans and lists read as a JavaScript client would join them
    (``true``, ``3,6,7``). Mappings are encoded as JSON with sorted keys so
    that equal mappings always give the same text.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_part_text(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(dict(value), sort_keys=True, separators=(",", ":"), default=str)
    return str(value)


def key_parts(api: str, options: Optional[Mapping[str, Any]] = None) -> list[str]:
    """Return the ordered strings that identify *api* called with *options*."""
    options = options or {}
    dbid = options.get("dbid")
    parts = [api, _part_text(dbid) if _present(dbid) else DEFAULT_DBID]

    for alternatives in KEY_FIELDS.get(api, ()):
        for name in alternatives:
            value = options.get(name)
            if _present(value):
                parts.append(_part_text(value))
                break

    return parts


def derive_key(
    namespace: uuid.UUID,
    api: str,
    options: Optional[Mapping[str, Any]] = None,
) -> str:
    """Derive the cache key (and file name) for *api* called with *options*.

    Args:
        namespace: UUID namespace from :class:`~qbcache.models.CacheSettings`.
        api: QuickBase API name, e.g. ``"API_GetSchema"``.
        options: The request options. Only ``dbid`` and the fields listed in
            :data:`KEY_FIELDS` for *api* affect the key.

    Returns:
        A string such as ``"1b671a64-40d5-491e-99b0-da01ff1f3341.json"``.
    """
    name = KEY_SEPARATOR.join(key_parts(api, options))
    return f"{uuid.uuid5(namespace, name)}{KEY_SUFFIX}"
