"""Config commands -- view and modify the settings file.

Provides the ``qbcache config`` sub-command group. The settings file holds
only what the user has set; everything else follows the built-in defaults
(see :mod:`qbcache.config`).
"""

from __future__ import annotations

from typing import Any

import typer

from qbcache.models import NEVER_EXPIRE
from qbcache.output import error, format_response, info, success

config_app = typer.Typer(no_args_is_help=True)

# Fields whose value is a table keyed by API name, and the type of each value.
_TABLE_FIELDS: dict[str, type] = {"allowed": bool, "data_timeouts": int}
_SCALAR_FIELDS = ("location", "namespace")


def _coerce(key: str, value: str, kind: type) -> Any:
    if kind is bool:
        return value.lower() in ("true", "1", "yes")
    if kind is int:
        if value.lower() == "never":
            return NEVER_EXPIRE
        try:
            return int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    return value


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective settings.

    Example::

        qbcache config show
        qbcache --json config show
    """
    from qbcache.commands.cache import build_cache
    from qbcache.config import settings_path
    from qbcache.exceptions import ConfigError

    config_file = (ctx.obj or {}).get("config_file")
    try:
        cache = build_cache(ctx)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Settings file: {config_file or settings_path()}")
    format_response(cache.settings.model_dump(mode="json"))


@config_app.command("set", context_settings={"ignore_unknown_options": True})
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(
        help="Settings key (dot notation, e.g. 'allowed.API_DoQuery')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a value in the settings file.

    ``location`` and ``namespace`` take a single value. ``allowed.<API>``
    takes a boolean and ``data_timeouts.<API>`` a TTL in milliseconds
    (``-1`` or ``never`` for never expire). The result is validated before
    it is saved.

    Example::

        qbcache config set allowed.API_DoQuery true
        qbcache config set data_timeouts.API_DoQuery 60000
        qbcache config set data_timeouts.API_GetSchema -1
    """
    from qbcache.config import build_settings, load_settings_file, save_settings_file
    from qbcache.exceptions import ConfigError

    config_file = (ctx.obj or {}).get("config_file")
    try:
        data = load_settings_file(config_file) or {}
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    keys = key.split(".")
    if len(keys) == 1 and keys[0] in _SCALAR_FIELDS:
        coerced: Any = value
        data[keys[0]] = coerced
    elif len(keys) == 2 and keys[0] in _TABLE_FIELDS:
        coerced = _coerce(key, value, _TABLE_FIELDS[keys[0]])
        table = data.get(keys[0])
        if not isinstance(table, dict):
            table = {}
        table[keys[1]] = coerced
        data[keys[0]] = table
    else:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        build_settings(data)
    except ConfigError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings_file(data, config_file)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Delete the settings file so every field follows the defaults.

    Asks for confirmation unless ``--force`` is active.
    """
    from qbcache.config import settings_path

    obj = ctx.obj or {}
    if not obj.get("force", False):
        if not typer.confirm("Reset all settings to defaults?"):
            info("Cancelled.")
            raise typer.Exit()

    path = obj.get("config_file") or settings_path()
    path.unlink(missing_ok=True)
    success("Settings reset to defaults.")
