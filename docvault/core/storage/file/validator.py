"""Upload validation: declared MIME type allow-list and size ceiling."""

from __future__ import annotations

import mimetypes
from enum import Enum
from typing import Any, Iterable

from docvault.config.settings import DEFAULT_ALLOWED_MIME_TYPES

from .errors import InvalidTypeError, NoFileError, TooLargeError
from .identifiers import extract_extension, sanitize_original_name

DEFAULT_MAX_SIZE_BYTES = 25 * 1024 * 1024


class FileTypeCategory(str, Enum):
    """File type categories accepted by the store."""
    DOCUMENTS = "documents"
    IMAGES = "images"


class FileValidator:
    """
    Validates upload requests independently of the surface that received them.

    Checks, in order:
    1. A file was actually supplied (non-empty original name)
    2. Declared MIME type is on the allow-list
    3. Filename extension maps to an allowed type
    4. Declared size is within the ceiling (when the size is known)

    The ceiling is also enforced while bytes are written, see
    ``BlobStore.put(max_bytes=...)``.
    """

    # Declared MIME type -> category
    MIME_CATEGORIES = {
        "application/pdf": FileTypeCategory.DOCUMENTS,
        "application/msword": FileTypeCategory.DOCUMENTS,
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FileTypeCategory.DOCUMENTS,
        "application/vnd.ms-powerpoint": FileTypeCategory.DOCUMENTS,
        "application/vnd.openxmlformats-officedocument.presentationml.presentation": FileTypeCategory.DOCUMENTS,
        "image/jpeg": FileTypeCategory.IMAGES,
        "image/png": FileTypeCategory.IMAGES,
    }

    # Extension -> MIME type for the accepted formats. Used for retrieval so
    # the served type does not depend on the host's mime.types database.
    EXTENSION_MIME_TYPES = {
        "pdf": "application/pdf",
        "doc": "application/msword",
        "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "ppt": "application/vnd.ms-powerpoint",
        "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "jpg": "image/jpeg",
        "jpeg": "image/jpeg",
        "png": "image/png",
    }

    def __init__(
        self,
        allowed_mime_types: Iterable[str] | None = None,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
    ):
        """
        Initialize file validator.

        Args:
            allowed_mime_types: Accepted declared MIME types (defaults to
                PDF, DOC/DOCX, PPT/PPTX, JPEG, PNG)
            max_size_bytes: Per-file size ceiling
        """
        if allowed_mime_types is None:
            allowed_mime_types = DEFAULT_ALLOWED_MIME_TYPES
        self.allowed_mime_types = frozenset(
            m.strip().lower() for m in allowed_mime_types)
        self.max_size_bytes = max_size_bytes

    @classmethod
    def from_config(cls, config: Any) -> 'FileValidator':
        """Build a validator from a ConfigManager."""
        return cls(
            allowed_mime_types=config.allowed_mime_types,
            max_size_bytes=config.max_file_size_bytes,
        )

    def validate(
        self,
        declared_mime_type: str | None,
        declared_size: int | None = None,
        original_name: str | None = None,
    ) -> None:
        """
        Validate an upload before any byte is written.

        Args:
            declared_mime_type: MIME type claimed by the client
            declared_size: Size claimed by the client, ``None`` if unknown
            original_name: Client filename, if the caller wants presence checked

        Raises:
            NoFileError: original_name was checked and is empty
            InvalidTypeError: MIME type is not on the allow-list, or the
                extension of original_name is not an accepted format
            TooLargeError: declared size exceeds the ceiling
        """
        name = None
        if original_name is not None:
            name = self.check_original_name(original_name)
        self.check_mime_type(declared_mime_type)
        if name is not None:
            self.check_extension(name)
        self.check_size(declared_size)

    def check_original_name(self, original_name: str | None) -> str:
        name = sanitize_original_name(original_name)
        if not name:
            raise NoFileError()
        return name

    def check_mime_type(self, declared_mime_type: str | None) -> str:
        mime_type = self.normalize_mime_type(declared_mime_type)
        if mime_type not in self.allowed_mime_types:
            raise InvalidTypeError(declared_mime_type)
        return mime_type

    def check_extension(self, original_name: str) -> str:
        """
        Require a filename extension that maps to an allowed MIME type.

        The stored blob keeps this extension and is served with the type it
        maps to, so a name like ``evil.html`` is refused even when the
        declared type is allowed.
        """
        ext = extract_extension(original_name)[1:].lower()
        mime_type = self.EXTENSION_MIME_TYPES.get(ext)
        if mime_type is None or mime_type not in self.allowed_mime_types:
            raise InvalidTypeError(mime_type)
        return mime_type

    def check_size(self, size_bytes: int | None) -> None:
        if size_bytes is not None and size_bytes > self.max_size_bytes:
            raise TooLargeError(self.max_size_bytes, size_bytes)

    def is_allowed(self, declared_mime_type: str | None) -> bool:
        return self.normalize_mime_type(declared_mime_type) in self.allowed_mime_types

    def get_category(self, declared_mime_type: str | None) -> FileTypeCategory | None:
        return self.MIME_CATEGORIES.get(self.normalize_mime_type(declared_mime_type))

    @staticmethod
    def normalize_mime_type(mime_type: str | None) -> str:
        """Lower-case a MIME type and drop parameters (``; charset=...``)."""
        if not mime_type:
            return ""
        return mime_type.split(";", 1)[0].strip().lower()

    @classmethod
    def mime_type_for_name(cls, storage_name: str) -> str:
        """
        Resolve a MIME type from a storage name's extension.

        Known upload formats come from EXTENSION_MIME_TYPES, anything else
        from the ``mimetypes`` database, falling back to
        ``application/octet-stream``.
        """
        ext = storage_name.rsplit(".", 1)[-1].lower() if "." in storage_name else ""
        if ext in cls.EXTENSION_MIME_TYPES:
            return cls.EXTENSION_MIME_TYPES[ext]
        guessed, _ = mimetypes.guess_type(storage_name)
        return guessed or "application/octet-stream"
