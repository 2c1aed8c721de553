"""Path-addressed byte storage for cache files.

:class:`FileStore` is the only part of qbcache that touches the filesystem
for cache entries. Each coroutine hands its blocking work to
:func:`asyncio.to_thread`, so those awaits are the engine's only
suspension points.

Error translation:

* a missing file on :meth:`FileStore.read` raises
  :class:`~qbcache.exceptions.EntryNotFound`;
* a missing file on :meth:`FileStore.remove` is success;
* every other :class:`OSError` is re-raised as
  :class:`~qbcache.exceptions.StorageError`.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional

from qbcache.exceptions import EntryNotFound, StorageError


def atomic_write(path: Path, data: bytes) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. A concurrent reader
    sees either the previous file or the complete new one. On any failure the
    temp file is cleaned up and the error re-raised.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


class FileStore:
    """Asynchronous read/write/remove over whole files.

    The store has no notion of keys or entries; callers pass full paths.
    It keeps no state, so one instance may be shared freely.
    """

    async def read(self, path: Path) -> bytes:
        """Return the full contents of *path*.

        Raises:
            EntryNotFound: If *path* does not exist.
            StorageError: On any other I/O failure.
        """
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise EntryNotFound(f"No cache file at {path}") from exc
        except OSError as exc:
            raise StorageError(f"Cannot read cache file {path}: {exc}") from exc

    async def write(self, path: Path, data: bytes) -> None:
        """Create or fully replace *path* with *data*.

        Raises:
            StorageError: If the file cannot be written.
        """
        try:
            await asyncio.to_thread(atomic_write, path, data)
        except OSError as exc:
            raise StorageError(f"Cannot write cache file {path}: {exc}") from exc

    async def remove(self, path: Path) -> None:
        """Delete *path*; a file that is already gone is not an error.

        Raises:
            StorageError: If the file exists but cannot be deleted.
        """
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot remove cache file {path}: {exc}") from exc

    async def scan(self, directory: Path, suffix: str = ".json") -> list[str]:
        """Return the sorted names of files in *directory* ending in *suffix*.

        A directory that does not exist yet holds no files.
        """

        def _scan() -> list[str]:
            if not directory.is_dir():
                return []
            return sorted(
                p.name
                for p in directory.iterdir()
                if p.name.endswith(suffix) and not p.name.startswith(".") and p.is_file()
            )

        try:
            return await asyncio.to_thread(_scan)
        except OSError as exc:
            raise StorageError(f"Cannot list cache directory {directory}: {exc}") from exc
