"""File storage module for handling file uploads and downloads."""

from __future__ import annotations

from .errors import (
    ErrorKind,
    FileStoreError,
    ValidationError,
    NoFileError,
    InvalidTypeError,
    TooLargeError,
    NotFoundError,
    LedgerCorruptError,
    StorageIOError,
    BlobExistsError,
    StreamInterruptedError,
)
from .identifiers import generate_storage_name, normalize_storage_name
from .validator import FileValidator, FileTypeCategory
from .backend import BlobStore, BlobStat, BlobStream
from .local_backend import LocalBlobStore
from .ledger import MetadataLedger, LedgerRecord
from .retrieval import RetrievalService, RetrievalMode, ResolvedFile
from .listing import ListingService, CatalogEntry
from .manager import FileManager, StoredFile

__all__ = [
    "ErrorKind",
    "FileStoreError",
    "ValidationError",
    "NoFileError",
    "InvalidTypeError",
    "TooLargeError",
    "NotFoundError",
    "LedgerCorruptError",
    "StorageIOError",
    "BlobExistsError",
    "StreamInterruptedError",
    "generate_storage_name",
    "normalize_storage_name",
    "FileValidator",
    "FileTypeCategory",
    "BlobStore",
    "BlobStat",
    "BlobStream",
    "LocalBlobStore",
    "MetadataLedger",
    "LedgerRecord",
    "RetrievalService",
    "RetrievalMode",
    "ResolvedFile",
    "ListingService",
    "CatalogEntry",
    "FileManager",
    "StoredFile",
]
