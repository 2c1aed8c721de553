"""Settings resolution with XDG paths, deep merging, and atomic writes.

This module builds the :class:`~qbcache.models.CacheSettings` an engine is
constructed with:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.qbcache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Settings file** -- a single JSON document (``config.json`` in the config
  directory) holding any subset of the settings fields.
* **Precedence resolution** -- :func:`load_settings` merges, lowest first:
  built-in defaults, the settings file, ``QBCACHE_*`` environment variables,
  then explicit overrides. Nested tables (``allowed``, ``data_timeouts``)
  are merged key by key rather than replaced.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from qbcache.cache.store import atomic_write
from qbcache.exceptions import ConfigError
from qbcache.models import (
    DEFAULT_ALLOWED,
    DEFAULT_DATA_TIMEOUTS,
    DEFAULT_NAMESPACE,
    CacheSettings,
)

_APP_NAME = "qbcache"
_CONFIG_FILENAME = "config.json"

ENV_LOCATION = "QBCACHE_LOCATION"
ENV_NAMESPACE = "QBCACHE_NAMESPACE"

# camelCase keys from JavaScript-style option objects.
_KEY_ALIASES = {"dataTimeouts": "data_timeouts"}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/qbcache/`` (default ``~/.config/qbcache/``).
    On macOS/Windows: ``~/.qbcache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the default cache directory, creating it if necessary.

    This is where ``<key>.json`` files land when the settings do not name a
    ``location``. Its contents can be deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/qbcache/`` (default ``~/.cache/qbcache/``).
    On macOS/Windows: ``~/.qbcache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary."""
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def settings_path() -> Path:
    """Path to the user settings file."""
    return get_config_dir() / _CONFIG_FILENAME


# --- Merging ---


def _normalise_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    return {_KEY_ALIASES.get(key, key): value for key, value in data.items()}


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new dict with *override* merged recursively over *base*.

    Nested mappings are merged key by key; any other value in *override*
    replaces the one in *base*. Neither argument is modified.
    """
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    location = os.environ.get(ENV_LOCATION)
    if location:
        overrides["location"] = location
    namespace = os.environ.get(ENV_NAMESPACE)
    if namespace:
        overrides["namespace"] = namespace
    return overrides


def build_settings(*layers: Optional[Mapping[str, Any]]) -> CacheSettings:
    """Validate the deep merge of *layers* over the built-in defaults.

    ``None`` layers are skipped. ``location`` is only materialised from the
    XDG cache directory when no layer supplies one.

    Raises:
        ConfigError: If the merged result fails validation.
    """
    data: dict[str, Any] = {}
    for layer in layers:
        if layer:
            data = deep_merge(data, _normalise_keys(layer))

    defaults: dict[str, Any] = {
        "namespace": str(DEFAULT_NAMESPACE),
        "allowed": dict(DEFAULT_ALLOWED),
        "data_timeouts": dict(DEFAULT_DATA_TIMEOUTS),
    }
    merged = deep_merge(defaults, data)
    try:
        return CacheSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid cache settings: {exc}") from exc


# --- Settings file ---


def load_settings_file(path: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Read the raw settings document.

    Args:
        path: Explicit settings file. Defaults to :func:`settings_path`.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or is not an object.
    """
    path = path or settings_path()
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings file at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid settings file at {path}: expected a JSON object")
    return data


def load_settings(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> CacheSettings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. *overrides* (e.g. CLI flags)
        2. Environment variables (``QBCACHE_LOCATION``, ``QBCACHE_NAMESPACE``)
        3. Settings file (*path*, default ``~/.config/qbcache/config.json``)
        4. Defaults

    Raises:
        ConfigError: If the settings file or the merged result is invalid.
    """
    return build_settings(load_settings_file(path), _env_overrides(), overrides)


def save_settings_file(data: Mapping[str, Any], path: Optional[Path] = None) -> Path:
    """Persist the raw settings document *data* atomically.

    Only the keys present in *data* are written, so fields the user never
    set keep following the built-in defaults.

    Returns:
        The path written.
    """
    path = path or settings_path()
    atomic_write(path, (json.dumps(data, indent=2) + "\n").encode("utf-8"))
    return path
