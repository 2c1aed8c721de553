"""Cache commands -- derive keys, show, clear, and list cache entries.

Every command builds a :class:`~qbcache.cache.QBCache` from the resolved
settings (``--config`` / ``--location`` on the root command, then
``QBCACHE_*`` environment variables, then the settings file) and drives
it with :func:`asyncio.run`.

Request options are given as ``--dbid`` plus repeated ``--option key=value``
pairs, mirroring the options object an API client passes to the cache.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Coroutine, Optional, TypeVar

import typer

from qbcache.exceptions import InvalidUsageError, QBCacheError, SerializationError
from qbcache.exit_codes import EXIT_MISS
from qbcache.output import error, format_response, info, print_data, print_table, success, warning

T = TypeVar("T")

_API_ARGUMENT = typer.Argument(help="QuickBase API name, e.g. API_GetSchema.")
_DBID_OPTION = typer.Option(None, "--dbid", "-d", help="Database id (default: main).")
_OPTION_OPTION = typer.Option(
    None, "--option", "-O", help="Request option as key=value (repeatable)."
)


def parse_options(dbid: Optional[str], pairs: Optional[list[str]]) -> dict[str, Any]:
    """Build a request options dict from ``--dbid`` and ``key=value`` pairs.

    Raises:
        InvalidUsageError: If a pair has no ``=`` or an empty key.
    """
    options: dict[str, Any] = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise InvalidUsageError(f"Expected key=value, got: {pair!r}")
        options[name] = value
    if dbid is not None:
        options["dbid"] = dbid
    return options


def build_cache(ctx: typer.Context):
    """Create a :class:`~qbcache.cache.QBCache` from the root command's options."""
    from qbcache.cache import QBCache
    from qbcache.config import load_settings

    obj = ctx.obj or {}
    overrides = {"location": obj["location"]} if obj.get("location") else None
    return QBCache(load_settings(obj.get("config_file"), overrides))


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro*, turning qbcache errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except QBCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _cache_or_exit(ctx: typer.Context):
    try:
        return build_cache(ctx)
    except QBCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _options_or_exit(dbid: Optional[str], pairs: Optional[list[str]]) -> dict[str, Any]:
    try:
        return parse_options(dbid, pairs)
    except InvalidUsageError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def key_command(
    ctx: typer.Context,
    api: str = _API_ARGUMENT,
    dbid: Optional[str] = _DBID_OPTION,
    option: Optional[list[str]] = _OPTION_OPTION,
) -> None:
    """Print the cache key for an API call.

    Example::

        qbcache key API_DoQuery --dbid bqx7xre7 -O qid=12
    """
    options = _options_or_exit(dbid, option)
    cache = _cache_or_exit(ctx)
    print_data(cache.get_cache_key(api, options))
    info(f"Path: {cache.path_for(api, options)}")
    if not cache.is_allowed(api):
        warning(f"{api} is not in the allowlist; it is never cached.")


def show_command(
    ctx: typer.Context,
    api: str = _API_ARGUMENT,
    dbid: Optional[str] = _DBID_OPTION,
    option: Optional[list[str]] = _OPTION_OPTION,
) -> None:
    """Print the cached response for an API call.

    Exits with code 4 on a miss. An expired entry is removed, exactly as
    an API client's lookup would.

    Example::

        qbcache show API_GetSchema --dbid bqx7xre7 --json
    """
    options = _options_or_exit(dbid, option)
    cache = _cache_or_exit(ctx)
    if not cache.is_allowed(api):
        warning(f"{api} is not in the allowlist; it is never cached.")
        raise typer.Exit(code=EXIT_MISS)

    result = _run(cache.load(api, options))
    if not result:
        warning(f"No cached response for {api}.")
        raise typer.Exit(code=EXIT_MISS)
    format_response(result.data)


def clear_command(
    ctx: typer.Context,
    api: str = _API_ARGUMENT,
    dbid: Optional[str] = _DBID_OPTION,
    option: Optional[list[str]] = _OPTION_OPTION,
) -> None:
    """Remove the cached response for an API call.

    Example::

        qbcache clear API_GetUserRole --dbid bqx7xre7 -O userid=58153882.d9ju
    """
    options = _options_or_exit(dbid, option)
    cache = _cache_or_exit(ctx)
    if _run(cache.clear(api, options)):
        success(f"Cleared {api} ({cache.get_cache_key(api, options)}).")
    else:
        warning(f"{api} is not in the allowlist; nothing to clear.")


def _format_exp(exp: int) -> str:
    if exp == -1:
        return "never"
    try:
        moment = datetime.fromtimestamp(exp / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        # Outside the platform's datetime range.
        return str(exp)
    return moment.isoformat(timespec="seconds")


def ls_command(ctx: typer.Context) -> None:
    """List cache files in the cache directory with their expiry.

    Listing reads files without evicting anything.
    """
    from qbcache.cache.policy import is_valid, now_ms

    cache = _cache_or_exit(ctx)

    async def _collect() -> list[list[str]]:
        now = now_ms()
        rows = []
        for key in await cache.disk_keys():
            try:
                entry = await cache.read_entry(key)
            except SerializationError:
                rows.append([key, "-", "corrupt"])
                continue
            if entry is None:
                continue
            status = "valid" if is_valid(entry, now) else "expired"
            rows.append([key, _format_exp(entry.exp), status])
        return rows

    rows = _run(_collect())
    info(f"Cache directory: {cache.settings.location}")
    if not rows:
        info("No cache entries.")
        return
    print_table(["Key", "Expires", "Status"], rows, title="Cache entries")
