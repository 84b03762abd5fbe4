"""Local filesystem blob store."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator

from docvault.logging.setup import get_logger

from .backend import BlobStat, BlobStore, BlobStream
from .errors import (
    BlobExistsError,
    NotFoundError,
    StorageIOError,
    TooLargeError,
)
from .identifiers import normalize_storage_name

logger = get_logger(__name__)

TEMP_PREFIX = ".tmp-"


class LocalBlobStore(BlobStore):
    """
    Local filesystem blob store.

    Blobs live directly under ``root`` as ``<uuid>.<ext>``:
    - root: /path/to/uploads/
    - Example: uploads/a1b2c3d4-e5f6-7890-abcd-ef1234567890.pdf

    Security features:
    - Storage names are reduced to a single path component before any join
    - Reserved names (the ledger document) are never served or listed
    - Writes go to a hidden temp file and are published atomically
    - Stored files are made read-only, no execute bit
    """

    def __init__(
        self,
        root: str | os.PathLike,
        reserved_names: Iterable[str] = (),
        chunk_size: int = 64 * 1024,
    ):
        """
        Initialize local blob store.

        Args:
            root: Directory holding the blobs (created on first write)
            reserved_names: Names inside root that are not blobs
            chunk_size: Read chunk size in bytes
        """
        self.root = Path(root)
        self.reserved_names = frozenset(reserved_names)
        self.chunk_size = chunk_size

    def _path_for(self, storage_name: str) -> Path:
        """Resolve a storage name to its path, rejecting anything unsafe."""
        name = normalize_storage_name(storage_name)
        if name in self.reserved_names:
            raise NotFoundError(storage_name)
        return self.root / name

    async def put(
        self,
        storage_name: str,
        chunks: AsyncIterable[bytes],
        max_bytes: int | None = None,
    ) -> int:
        """
        Write a blob to the local filesystem.

        Bytes are streamed into a temp file in the same directory, fsynced,
        then hard-linked to the final name. Linking fails if the name exists,
        so an existing blob is never overwritten.
        """
        target = self._path_for(storage_name)

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.root, prefix=TEMP_PREFIX)
        except OSError as e:
            raise StorageIOError(f"Failed to prepare upload directory: {e}") from e

        size_bytes = 0
        try:
            # Errors raised by the source stream propagate unchanged; only
            # failures of our own file operations become StorageIOError.
            with os.fdopen(fd, "wb") as f:
                async for chunk in chunks:
                    size_bytes += len(chunk)
                    if max_bytes is not None and size_bytes > max_bytes:
                        raise TooLargeError(max_bytes)
                    try:
                        f.write(chunk)
                    except OSError as e:
                        raise StorageIOError(f"Failed to save file: {e}") from e
                try:
                    f.flush()
                    os.fsync(f.fileno())
                except OSError as e:
                    raise StorageIOError(f"Failed to save file: {e}") from e

            try:
                os.chmod(temp_path, 0o444)
                os.link(temp_path, target)
            except FileExistsError:
                raise BlobExistsError(target.name)
            except OSError as e:
                raise StorageIOError(f"Failed to save file: {e}") from e
        finally:
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass

        logger.debug(f"Stored blob {target.name} ({size_bytes} bytes)")
        return size_bytes

    async def get(self, storage_name: str) -> BlobStream:
        path = self._path_for(storage_name)
        try:
            handle = open(path, "rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise NotFoundError(storage_name)
        except OSError as e:
            raise StorageIOError(f"Failed to open file: {e}") from e

        return BlobStream(
            path.name, self._read_chunks(handle), on_close=handle.close)

    async def _read_chunks(self, handle) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = handle.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            handle.close()

    async def stat(self, storage_name: str) -> BlobStat:
        path = self._path_for(storage_name)
        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            raise NotFoundError(storage_name)
        except OSError as e:
            raise StorageIOError(f"Failed to stat file: {e}") from e

        if not path.is_file():
            raise NotFoundError(storage_name)

        # st_birthtime is only reported on some platforms
        created = getattr(st, "st_birthtime", None) or st.st_mtime
        return BlobStat(
            storage_name=path.name,
            size_bytes=st.st_size,
            created_at=datetime.fromtimestamp(created, tz=timezone.utc),
        )

    def list(self) -> Iterator[str]:
        if not self.root.is_dir():
            return
        with os.scandir(self.root) as entries:
            for entry in entries:
                if entry.name.startswith(".") or entry.name in self.reserved_names:
                    continue
                if entry.is_file(follow_symlinks=False):
                    yield entry.name

    async def exists(self, storage_name: str) -> bool:
        try:
            return self._path_for(storage_name).is_file()
        except NotFoundError:
            return False

    async def delete(self, storage_name: str) -> bool:
        path = self._path_for(storage_name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageIOError(f"Failed to delete file: {e}") from e
        logger.info(f"Deleted blob {path.name}")
        return True
