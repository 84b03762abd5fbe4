"""
Files API router.

Endpoints for uploading documents, listing the catalog and streaming stored
files back for inline viewing or download. Core errors propagate to the
application's FileStoreError handler, which maps their kind to a status code.
"""

from __future__ import annotations

from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import StreamingResponse

from docvault.config.settings import get_config_manager
from docvault.logging.setup import get_logger
from docvault.core.api.dependencies import get_file_manager, get_identity
from docvault.core.storage.file import (
    FileManager,
    NoFileError,
    RetrievalMode,
)

logger = get_logger(__name__)

router = APIRouter(tags=["files"])

# Legacy static path, kept for links handed out by older clients
legacy_router = APIRouter(prefix="/uploads", tags=["files"])


async def iter_upload(file: UploadFile, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield an UploadFile's content in chunks."""
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        yield chunk


async def _stream_response(
    file_manager: FileManager,
    storage_name: str,
    mode: RetrievalMode,
) -> StreamingResponse:
    resolved = await file_manager.retrieve(storage_name, mode)
    logger.info(
        f"Serving file: storage_name={resolved.storage_name}, mode={mode.value}")
    return StreamingResponse(
        resolved.stream,
        media_type=resolved.mime_type,
        headers=resolved.headers,
    )


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    file_manager: FileManager = Depends(get_file_manager),
    identity: Optional[str] = Depends(get_identity),
):
    """
    Upload a document.

    Accepted types: PDF, DOC/DOCX, PPT/PPTX, JPEG, PNG. Size limit: 25 MB
    (configurable).

    Returns:
        Upload summary with the generated storage name

    Raises:
        400: No file, or type not allowed
        413: File too large
        500: Storage or ledger failure
    """
    if file is None:
        raise NoFileError()

    logger.info(
        f"File upload request: filename={file.filename!r}, "
        f"content_type={file.content_type}, uploader={identity}")

    try:
        stored = await file_manager.upload(
            iter_upload(file, get_config_manager().chunk_size),
            declared_mime_type=file.content_type,
            declared_original_name=file.filename,
            declared_size=getattr(file, "size", None),
            identity=identity,
        )
    finally:
        await file.close()

    return {
        "success": True,
        "message": "File uploaded successfully",
        **stored.to_dict(),
    }


@router.get("/")
async def list_files(
    file_manager: FileManager = Depends(get_file_manager),
):
    """List every stored file with view and download URLs."""
    entries = await file_manager.list()
    return [entry.to_dict() for entry in entries]


@router.get("/view/{storage_name}")
async def view_file(
    storage_name: str,
    file_manager: FileManager = Depends(get_file_manager),
):
    """Stream a file for inline display in the browser."""
    return await _stream_response(file_manager, storage_name, RetrievalMode.INLINE)


@router.get("/download/{storage_name}")
async def download_file(
    storage_name: str,
    file_manager: FileManager = Depends(get_file_manager),
):
    """Stream a file as an attachment under its original name."""
    return await _stream_response(file_manager, storage_name, RetrievalMode.ATTACHMENT)


@legacy_router.get("/{storage_name}")
async def legacy_view_file(
    storage_name: str,
    file_manager: FileManager = Depends(get_file_manager),
):
    """Inline view under the old static uploads path."""
    return await _stream_response(file_manager, storage_name, RetrievalMode.INLINE)
