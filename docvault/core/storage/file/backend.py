"""Abstract blob store for uploaded file bytes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, AsyncIterable, AsyncIterator, Callable, Iterator


class BlobStat:
    """Size and creation time of a stored blob."""

    def __init__(self, storage_name: str, size_bytes: int, created_at: datetime):
        self.storage_name = storage_name
        self.size_bytes = size_bytes
        self.created_at = created_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "storage_name": self.storage_name,
            "size_bytes": self.size_bytes,
            "created_at": self.created_at.isoformat(),
        }


class BlobStream:
    """
    Async iterator over the chunks of one opened blob.

    The underlying handle is already open when the stream is handed out, so a
    missing blob is reported before any byte is produced. The handle is closed
    when iteration ends, fails, or ``aclose()`` is called.
    """

    def __init__(
        self,
        storage_name: str,
        chunks: AsyncIterator[bytes],
        on_close: Callable[[], None] | None = None,
    ):
        self.storage_name = storage_name
        self._chunks = chunks
        self._on_close = on_close

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks

    async def aclose(self) -> None:
        try:
            await self._chunks.aclose()
        finally:
            if self._on_close is not None:
                self._on_close()

    async def read_all(self) -> bytes:
        """Drain the stream into memory."""
        return b"".join([chunk async for chunk in self])


class BlobStore(ABC):
    """
    Abstract blob store keyed by opaque storage names.

    Implementations:
    - LocalBlobStore: one flat directory on the local filesystem

    Every operation must normalize the storage name before touching the
    backing store and treat reserved or invalid names as absent.
    """

    @abstractmethod
    async def put(
        self,
        storage_name: str,
        chunks: AsyncIterable[bytes],
        max_bytes: int | None = None,
    ) -> int:
        """
        Write a blob under a new storage name.

        Args:
            storage_name: Generated storage name
            chunks: Byte chunks of the upload
            max_bytes: Abort with TooLargeError once more bytes arrive

        Returns:
            Number of bytes written

        Raises:
            TooLargeError: If max_bytes is exceeded (nothing is kept)
            BlobExistsError: If the name is already taken
            StorageIOError: If the write fails
        """

    @abstractmethod
    async def get(self, storage_name: str) -> BlobStream:
        """
        Open a blob for streaming.

        Raises:
            NotFoundError: If the blob does not exist
            StorageIOError: If the blob cannot be opened
        """

    @abstractmethod
    async def stat(self, storage_name: str) -> BlobStat:
        """
        Get size and creation time without reading the blob.

        Raises:
            NotFoundError: If the blob does not exist
        """

    @abstractmethod
    def list(self) -> Iterator[str]:
        """Lazily enumerate stored blob names. Order is unspecified."""

    @abstractmethod
    async def exists(self, storage_name: str) -> bool:
        """Check if a blob exists. Invalid names do not exist."""

    @abstractmethod
    async def delete(self, storage_name: str) -> bool:
        """
        Delete a blob.

        Returns:
            True if the blob was deleted, False if not found
        """
