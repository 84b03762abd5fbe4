"""Catalog of stored files, joining blob store contents with the ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from docvault.logging.setup import get_logger

from .backend import BlobStore
from .errors import NotFoundError
from .ledger import MetadataLedger

logger = get_logger(__name__)


class CatalogEntry:
    """One file as presented by the listing endpoint."""

    def __init__(
        self,
        storage_name: str,
        original_name: str,
        size_bytes: int,
        created_at: datetime,
        view_url: str,
        download_url: str,
    ):
        self.storage_name = storage_name
        self.original_name = original_name
        self.size_bytes = size_bytes
        self.created_at = created_at
        self.view_url = view_url
        self.download_url = download_url

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape clients already consume."""
        return {
            "filename": self.storage_name,
            "originalname": self.original_name,
            "size": self.size_bytes,
            "createdAt": self.created_at.isoformat(),
            "url": self.view_url,
            "downloadUrl": self.download_url,
        }


class ListingService:
    """
    Builds the file catalog.

    Every blob in the store is listed, whether or not the ledger knows it;
    unknown blobs are shown under their storage name. The ledger is read once
    per listing, so one call sees one ledger snapshot.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        ledger: MetadataLedger,
        url_prefix: str = "/api/files",
    ):
        self.blob_store = blob_store
        self.ledger = ledger
        self.url_prefix = url_prefix.rstrip("/")

    def view_url(self, storage_name: str) -> str:
        return f"{self.url_prefix}/view/{storage_name}"

    def download_url(self, storage_name: str) -> str:
        return f"{self.url_prefix}/download/{storage_name}"

    async def list_all(self) -> list[CatalogEntry]:
        """
        List all stored files, sorted by storage name.

        Returns:
            List of CatalogEntry objects
        """
        names: dict[str, str] = {}
        for record in await self.ledger.all():
            # First record wins for duplicated storage names
            names.setdefault(record.storage_name, record.original_name)

        ledger_name = self.ledger.path.name
        entries = []
        for storage_name in sorted(self.blob_store.list()):
            if storage_name == ledger_name:
                continue
            try:
                stat = await self.blob_store.stat(storage_name)
            except NotFoundError:
                # Deleted between enumeration and stat
                logger.debug(f"Blob vanished during listing: {storage_name}")
                continue

            entries.append(CatalogEntry(
                storage_name=storage_name,
                original_name=names.get(storage_name, storage_name),
                size_bytes=stat.size_bytes,
                created_at=stat.created_at,
                view_url=self.view_url(storage_name),
                download_url=self.download_url(storage_name),
            ))

        return entries
