"""Resolve a storage name to a byte stream plus response headers."""

from __future__ import annotations

from enum import Enum
from typing import AsyncIterator
from urllib.parse import quote

from docvault.logging.setup import get_logger

from .backend import BlobStore, BlobStream
from .errors import StreamInterruptedError
from .identifiers import normalize_storage_name
from .ledger import MetadataLedger
from .validator import FileValidator

logger = get_logger(__name__)

# Characters JavaScript's encodeURIComponent leaves alone, besides
# letters, digits and "_.-~" which quote() never escapes.
_URI_COMPONENT_SAFE = "!*'()"


class RetrievalMode(str, Enum):
    """How the client should handle the served file."""
    INLINE = "inline"
    ATTACHMENT = "attachment"


def _strip_controls(name: str) -> str:
    return "".join(ch for ch in name if ch >= " " and ch != "\x7f")


def encode_uri_component(value: str) -> str:
    """Percent-encode like JavaScript's ``encodeURIComponent``."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def content_disposition(mode: RetrievalMode, display_name: str) -> str:
    """
    Build a Content-Disposition header value.

    - attachment: ``attachment; filename="<percent-encoded name>"``
    - inline: ``inline; filename="<name>"`` with quotes and backslashes
      escaped; names that are not plain ASCII get an ASCII fallback plus an
      RFC 5987 ``filename*`` parameter
    """
    name = _strip_controls(display_name)

    if mode == RetrievalMode.ATTACHMENT:
        return f'attachment; filename="{encode_uri_component(name)}"'

    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    if escaped.isascii():
        return f'inline; filename="{escaped}"'

    fallback = escaped.encode("ascii", "replace").decode("ascii")
    return (f'inline; filename="{fallback}"; '
            f"filename*=UTF-8''{encode_uri_component(name)}")


class ResolvedFile:
    """A stream ready to be sent, with the headers that describe it."""

    def __init__(
        self,
        storage_name: str,
        stream: AsyncIterator[bytes],
        mime_type: str,
        display_name: str,
        mode: RetrievalMode,
        size_bytes: int | None = None,
    ):
        self.storage_name = storage_name
        self.stream = stream
        self.mime_type = mime_type
        self.display_name = display_name
        self.mode = mode
        self.size_bytes = size_bytes

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": self.mime_type,
            "Content-Disposition": content_disposition(self.mode, self.display_name),
            "X-Content-Type-Options": "nosniff",
        }
        if self.size_bytes is not None:
            headers["Content-Length"] = str(self.size_bytes)
        return headers

    async def read_all(self) -> bytes:
        return b"".join([chunk async for chunk in self.stream])


class RetrievalService:
    """
    Serves stored blobs for inline viewing or attachment download.

    The display name comes from the ledger (falling back to the storage name)
    and the MIME type from the storage name's extension. Metadata declared at
    upload time is never trusted for serving.
    """

    def __init__(self, blob_store: BlobStore, ledger: MetadataLedger):
        self.blob_store = blob_store
        self.ledger = ledger

    async def resolve(
        self,
        storage_name: str,
        mode: RetrievalMode | str = RetrievalMode.INLINE,
    ) -> ResolvedFile:
        """
        Resolve a storage name for streaming.

        Args:
            storage_name: Requested storage name (untrusted)
            mode: ``inline`` or ``attachment``

        Returns:
            ResolvedFile with an open stream

        Raises:
            NotFoundError: If the name is unsafe or the blob does not exist
            StorageIOError: If the blob cannot be opened
        """
        mode = RetrievalMode(mode)
        name = normalize_storage_name(storage_name)

        blob = await self.blob_store.get(name)
        try:
            stat = await self.blob_store.stat(name)
            display_name = await self.ledger.lookup(name) or name
        except BaseException:
            await blob.aclose()
            raise

        return ResolvedFile(
            storage_name=name,
            stream=self._guarded(blob),
            mime_type=FileValidator.mime_type_for_name(name),
            display_name=display_name,
            mode=mode,
            size_bytes=stat.size_bytes,
        )

    async def _guarded(self, blob: BlobStream) -> AsyncIterator[bytes]:
        """
        Relay chunks, turning a mid-stream read failure into StreamInterruptedError.

        Once headers are out the status cannot change, so the failure is
        logged and the transfer is cut short instead of appending an error
        body.
        """
        sent = 0
        try:
            async for chunk in blob:
                sent += len(chunk)
                yield chunk
        except OSError as e:
            logger.error(
                f"Stream for {blob.storage_name} failed after {sent} bytes: {e}")
            raise StreamInterruptedError(
                f"Read failed after {sent} bytes") from e
        finally:
            await blob.aclose()
