"""Numeric process exit codes for the ``qbcache`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~qbcache.exceptions.QBCacheError` subclass.
Shell wrappers can inspect the exit code to tell a cache miss apart from a
broken cache directory without parsing stderr.

Example::

    $ qbcache show API_GetSchema --dbid bqx7xre7
    $ echo $?
    4   # EXIT_MISS -- nothing cached for that key
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_STORAGE_ERROR = 3
"""The cache directory could not be read or written."""

EXIT_MISS = 4
"""No usable cache entry exists for the requested key."""

EXIT_SERIALIZATION_ERROR = 5
"""A cache file is corrupt or a payload could not be serialised."""
