"""
Standardized error response handling for the docvault API.

Core errors carry an ErrorKind; this module maps kinds to status codes and
builds the uniform ``{"error": {...}}`` body.
"""

from __future__ import annotations

from typing import Any
from fastapi import status

from docvault.core.storage.file.errors import ErrorKind, FileStoreError


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NO_FILE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_TYPE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.TOO_LARGE: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.LEDGER_CORRUPT: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.STORAGE_IO_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.STREAM_INTERRUPTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for_kind(kind: ErrorKind) -> int:
    """Map an error kind to its HTTP status code."""
    return STATUS_BY_KIND.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(
    message: str,
    details: list[str] | None = None,
    field: str | None = None,
    code: str | None = None
) -> dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        message: Human-readable error summary
        details: List of specific error details (optional)
        field: Field name that caused the error (optional)
        code: Error code for programmatic handling (optional)

    Returns:
        Standardized error response dictionary

    Examples:
        >>> error_response("File not found", code="NOT_FOUND")
        {'error': {'message': 'File not found', 'code': 'NOT_FOUND'}}
    """
    error_dict: dict[str, Any] = {"message": message}

    if details is not None:
        error_dict["details"] = details

    if field is not None:
        error_dict["field"] = field

    if code is not None:
        error_dict["code"] = code

    return {"error": error_dict}


def file_store_error_response(exc: FileStoreError) -> tuple[int, dict[str, Any]]:
    """Return (status_code, body) for a core error."""
    return status_for_kind(exc.kind), error_response(exc.message, code=exc.kind.value)
