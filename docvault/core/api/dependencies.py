"""
FastAPI dependencies for the files router.
"""

from __future__ import annotations

from typing import Optional
from fastapi import Request

from docvault.config.settings import get_config_manager
from docvault.core.storage.file import FileManager


def get_file_manager(request: Request) -> FileManager:
    """
    Get the FileManager built at startup, creating it if the app skipped
    the lifespan (e.g. mounted without startup events).
    """
    if not hasattr(request.app.state, "file_manager"):
        request.app.state.file_manager = FileManager.from_config(
            get_config_manager())
    return request.app.state.file_manager


def get_identity(request: Request) -> Optional[str]:
    """
    Read the uploader identity set by the upstream auth layer.

    The value is opaque: it is recorded as provenance and never checked.
    """
    header = get_config_manager().settings.api.identity_header
    identity = (request.headers.get(header) or "").strip()
    return identity or None
