"""Exception hierarchy for qbcache.

All exceptions inherit from :class:`QBCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`qbcache.exit_codes`.
The engine only ever lets :class:`StorageError` and
:class:`SerializationError` escape; :class:`EntryNotFound` is raised by the
file store and always turned into a cache miss.

Subclass hierarchy::

    QBCacheError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- StorageError        (exit 3)
    +-- EntryNotFound       (exit 4)
    +-- SerializationError  (exit 5)
    +-- ConfigError         (exit 1)
"""

from qbcache.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MISS,
    EXIT_SERIALIZATION_ERROR,
    EXIT_STORAGE_ERROR,
)


class QBCacheError(Exception):
    """Base exception for all qbcache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(QBCacheError):
    """Raised for invalid CLI arguments (e.g. a malformed ``--option``)."""

    exit_code = EXIT_INVALID_USAGE


class StorageError(QBCacheError):
    """Raised when the cache directory cannot be read, written, or cleaned up."""

    exit_code = EXIT_STORAGE_ERROR


class EntryNotFound(QBCacheError):
    """Raised by :class:`~qbcache.cache.store.FileStore` when a cache file does not exist."""

    exit_code = EXIT_MISS


class SerializationError(QBCacheError):
    """Raised for corrupt cache files or payloads that are not JSON-serialisable."""

    exit_code = EXIT_SERIALIZATION_ERROR


class ConfigError(QBCacheError):
    """Raised for configuration problems (invalid settings file, bad namespace)."""

    exit_code = EXIT_GENERIC_FAILURE
