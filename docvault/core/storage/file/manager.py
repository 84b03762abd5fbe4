"""File manager: the upload, list and retrieve operations of the file store."""

from __future__ import annotations

import asyncio
import os
from datetime import datetime
from typing import Any, AsyncIterable

from docvault.logging.setup import get_logger

from .backend import BlobStore
from .errors import FileStoreError
from .identifiers import generate_storage_name
from .ledger import MetadataLedger
from .listing import CatalogEntry, ListingService
from .local_backend import LocalBlobStore
from .retrieval import ResolvedFile, RetrievalMode, RetrievalService
from .validator import FileValidator

logger = get_logger(__name__)


class StoredFile:
    """Result of a successful upload."""

    def __init__(
        self,
        storage_name: str,
        original_name: str,
        size_bytes: int,
        mime_type: str,
        created_at: datetime,
        uploader: str | None = None,
    ):
        self.storage_name = storage_name
        self.original_name = original_name
        self.size_bytes = size_bytes
        self.mime_type = mime_type
        self.created_at = created_at
        self.uploader = uploader

    def to_dict(self) -> dict[str, Any]:
        """Convert to the upload response payload."""
        return {
            "filename": self.storage_name,
            "originalname": self.original_name,
            "size": self.size_bytes,
            "mimetype": self.mime_type,
        }


class FileManager:
    """
    High-level file store.

    Upload order is fixed: validate, generate a name, write the blob, then
    append the ledger record. A rejected upload writes nothing; a failed
    ledger append removes the blob it just wrote, so every ledger record
    points at a complete blob.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        ledger: MetadataLedger,
        validator: FileValidator,
        url_prefix: str = "/api/files",
    ):
        """
        Initialize file manager.

        Args:
            blob_store: Where file bytes live
            ledger: Storage name -> original name records
            validator: Upload rules
            url_prefix: Route prefix used to build catalog URLs
        """
        self.blob_store = blob_store
        self.ledger = ledger
        self.validator = validator
        self.retrieval = RetrievalService(blob_store, ledger)
        self.listing = ListingService(blob_store, ledger, url_prefix)

    @classmethod
    def from_config(cls, config: Any) -> FileManager:
        """
        Build a file manager backed by the local filesystem.

        Args:
            config: ConfigManager instance
        """
        ledger_path = config.ledger_path
        upload_dir = config.upload_dir
        reserved = ()
        if os.path.abspath(os.path.dirname(ledger_path)) == os.path.abspath(upload_dir):
            reserved = (os.path.basename(ledger_path),)

        blob_store = LocalBlobStore(
            upload_dir, reserved_names=reserved, chunk_size=config.chunk_size)
        return cls(
            blob_store=blob_store,
            ledger=MetadataLedger(ledger_path),
            validator=FileValidator.from_config(config),
            url_prefix=config.files_prefix,
        )

    async def upload(
        self,
        chunks: AsyncIterable[bytes],
        declared_mime_type: str | None,
        declared_original_name: str | None,
        declared_size: int | None = None,
        identity: str | None = None,
    ) -> StoredFile:
        """
        Store an uploaded file.

        Args:
            chunks: File bytes
            declared_mime_type: MIME type claimed by the client
            declared_original_name: Filename claimed by the client
            declared_size: Size claimed by the client, if known
            identity: Opaque uploader identity, recorded but not enforced

        Returns:
            StoredFile describing the new blob

        Raises:
            NoFileError, InvalidTypeError, TooLargeError: Upload rejected
            LedgerCorruptError: Ledger unreadable, upload refused
            StorageIOError: Write failed
        """
        original_name = self.validator.check_original_name(declared_original_name)
        mime_type = self.validator.check_mime_type(declared_mime_type)
        self.validator.check_extension(original_name)
        self.validator.check_size(declared_size)

        storage_name = generate_storage_name(original_name)
        size_bytes = await self.blob_store.put(
            storage_name, chunks, max_bytes=self.validator.max_size_bytes)

        try:
            stat = await self.blob_store.stat(storage_name)
        except BaseException as e:
            logger.error(f"Stat failed for {storage_name}, removing blob: {e}")
            await self.blob_store.delete(storage_name)
            raise

        # The append runs in a worker thread that cancellation cannot stop,
        # so the blob is only removed once the append is known to have failed.
        append = asyncio.ensure_future(
            self.ledger.append(storage_name, original_name, identity))
        try:
            await asyncio.shield(append)
        except asyncio.CancelledError:
            await asyncio.wait([append])
            if append.cancelled() or append.exception() is not None:
                logger.warning(
                    f"Upload cancelled, ledger append failed, removing blob {storage_name}")
                await self.blob_store.delete(storage_name)
            else:
                logger.warning(
                    f"Upload cancelled after ledger commit, keeping blob {storage_name}")
            raise
        except BaseException as e:
            logger.error(
                f"Ledger append failed for {storage_name}, removing blob: {e}")
            await self.blob_store.delete(storage_name)
            raise

        logger.info(
            f"File uploaded: storage_name={storage_name}, size={size_bytes}, "
            f"uploader={identity}")

        return StoredFile(
            storage_name=storage_name,
            original_name=original_name,
            size_bytes=size_bytes,
            mime_type=mime_type,
            created_at=stat.created_at,
            uploader=identity,
        )

    async def list(self) -> list[CatalogEntry]:
        """List every stored file with its display name and URLs."""
        return await self.listing.list_all()

    async def retrieve(
        self,
        storage_name: str,
        mode: RetrievalMode | str = RetrievalMode.INLINE,
    ) -> ResolvedFile:
        """
        Open a stored file for streaming.

        Raises:
            NotFoundError: If the name is unsafe or unknown
        """
        try:
            return await self.retrieval.resolve(storage_name, mode)
        except FileStoreError as e:
            logger.info(f"Retrieval of {storage_name!r} failed: {e.kind.value}")
            raise
