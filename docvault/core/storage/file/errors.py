"""Error kinds raised by the file storage subsystem.

Every exception carries a stable ``kind`` tag. The API layer maps kinds to
status codes and never inspects the message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Stable error tags exposed to the boundary layer."""
    NO_FILE = "NO_FILE"
    INVALID_TYPE = "INVALID_TYPE"
    TOO_LARGE = "TOO_LARGE"
    NOT_FOUND = "NOT_FOUND"
    LEDGER_CORRUPT = "LEDGER_CORRUPT"
    STORAGE_IO_ERROR = "STORAGE_IO_ERROR"
    STREAM_INTERRUPTED = "STREAM_INTERRUPTED"


class FileStoreError(Exception):
    """Base class for file storage errors."""

    kind: ErrorKind = ErrorKind.STORAGE_IO_ERROR
    default_message = "File storage error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(FileStoreError):
    """Raised when an upload is rejected before anything is written."""
    default_message = "File validation failed"


class NoFileError(ValidationError):
    kind = ErrorKind.NO_FILE
    default_message = "No file uploaded"


class InvalidTypeError(ValidationError):
    kind = ErrorKind.INVALID_TYPE
    default_message = "Invalid file type. Only PDF, DOC, PPT, JPG, PNG are allowed."

    def __init__(self, mime_type: str | None = None, message: str | None = None):
        super().__init__(message)
        self.mime_type = mime_type


class TooLargeError(ValidationError):
    kind = ErrorKind.TOO_LARGE

    def __init__(self, limit_bytes: int, size_bytes: int | None = None):
        limit_mb = limit_bytes / (1024 * 1024)
        super().__init__(f"File size exceeds {limit_mb:g}MB limit")
        self.limit_bytes = limit_bytes
        self.size_bytes = size_bytes


class NotFoundError(FileStoreError):
    kind = ErrorKind.NOT_FOUND
    default_message = "File not found"

    def __init__(self, storage_name: str | None = None):
        super().__init__()
        self.storage_name = storage_name


class LedgerCorruptError(FileStoreError):
    kind = ErrorKind.LEDGER_CORRUPT
    default_message = "File metadata ledger is unreadable"


class StorageIOError(FileStoreError):
    kind = ErrorKind.STORAGE_IO_ERROR
    default_message = "Storage operation failed"


class BlobExistsError(StorageIOError):
    """Raised when a put targets a storage name that is already taken."""

    def __init__(self, storage_name: str):
        super().__init__(f"Blob already exists: {storage_name}")
        self.storage_name = storage_name


class StreamInterruptedError(FileStoreError):
    kind = ErrorKind.STREAM_INTERRUPTED
    default_message = "File stream interrupted"
