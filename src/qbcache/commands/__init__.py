"""Built-in CLI commands for qbcache.

Each sub-module exposes command functions or a :class:`typer.Typer`
instance that is registered on the root application in
:mod:`qbcache.app`:

- :mod:`~qbcache.commands.cache` -- ``key``, ``show``, ``clear``, ``ls``
- :mod:`~qbcache.commands.config` -- ``config show``, ``config set``,
  ``config reset``
"""
