"""
Metadata ledger: the JSON document mapping storage names to original names.

The document is a list of ``{"filename": ..., "originalname": ...}`` records
in upload order. Field names are kept for compatibility with existing ledger
files. Every append rewrites the whole document, so appends are serialized
behind a lock and published with an atomic rename. Readers never take the
lock; they always see either the old or the new document.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from docvault.logging.setup import get_logger

from .errors import LedgerCorruptError, StorageIOError

logger = get_logger(__name__)


class LedgerRecord:
    """One ledger entry."""

    def __init__(
        self,
        storage_name: str,
        original_name: str,
        uploader: str | None = None,
    ):
        self.storage_name = storage_name
        self.original_name = original_name
        self.uploader = uploader

    def to_dict(self) -> dict[str, Any]:
        data = {
            "filename": self.storage_name,
            "originalname": self.original_name,
        }
        if self.uploader is not None:
            data["uploader"] = self.uploader
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerRecord:
        return cls(
            storage_name=data["filename"],
            original_name=data["originalname"],
            uploader=data.get("uploader"),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LedgerRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (f"LedgerRecord(storage_name={self.storage_name!r}, "
                f"original_name={self.original_name!r})")


class MetadataLedger:
    """
    Append-only record store persisted as one JSON document.

    Failure policy:
    - append fails closed: an unreadable document raises LedgerCorruptError
      and nothing is written, so earlier records are never lost
    - lookup/get/all fail open: an unreadable or missing document reads as
      empty and the error is logged
    """

    def __init__(self, path: str | os.PathLike):
        """
        Initialize the ledger.

        Args:
            path: Location of the JSON document (created on first append)
        """
        self.path = Path(path)
        # One lock per ledger instance; share the instance between requests.
        self._lock = threading.Lock()

    async def append(
        self,
        storage_name: str,
        original_name: str,
        uploader: str | None = None,
    ) -> LedgerRecord:
        """
        Append one record.

        The read-modify-write cycle runs in a worker thread under the ledger
        lock, so concurrent appends never lose each other's records.

        Raises:
            LedgerCorruptError: If the existing document cannot be parsed
            StorageIOError: If the document cannot be written
        """
        record = LedgerRecord(storage_name, original_name, uploader)
        await asyncio.to_thread(self._append_locked, record)
        return record

    def _append_locked(self, record: LedgerRecord) -> None:
        with self._lock:
            records = self._read_raw()
            records.append(record.to_dict())
            self._write_raw(records)
        logger.debug(f"Ledger append: {record.storage_name}")

    async def lookup(self, storage_name: str) -> str | None:
        """Return the original name for a storage name, or None if absent."""
        record = await self.get(storage_name)
        return record.original_name if record is not None else None

    async def get(self, storage_name: str) -> LedgerRecord | None:
        """Return the first record for a storage name, or None if absent."""
        for record in await self.all():
            if record.storage_name == storage_name:
                return record
        return None

    async def all(self) -> list[LedgerRecord]:
        """Return every record in insertion order (empty if unreadable)."""
        try:
            return [LedgerRecord.from_dict(r) for r in self._read_raw()]
        except LedgerCorruptError as e:
            logger.warning(f"Ledger unreadable, serving without names: {e}")
            return []

    def _read_raw(self) -> list[dict[str, Any]]:
        """
        Load and validate the document.

        A missing document is an empty ledger.

        Raises:
            LedgerCorruptError: If the document is unreadable or malformed
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            raise LedgerCorruptError(f"Cannot read ledger {self.path}: {e}") from e

        if not isinstance(data, list):
            raise LedgerCorruptError(f"Ledger {self.path} is not a list")
        for entry in data:
            if (not isinstance(entry, dict)
                    or not isinstance(entry.get("filename"), str)
                    or not isinstance(entry.get("originalname"), str)):
                raise LedgerCorruptError(
                    f"Ledger {self.path} contains a malformed record")
        return data

    def _write_raw(self, records: list[dict[str, Any]]) -> None:
        """Write the document to a temp file and atomically replace the old one."""
        temp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
            temp_path = None
        except OSError as e:
            raise StorageIOError(f"Failed to write ledger: {e}") from e
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)
