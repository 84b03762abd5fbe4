"""Storage name generation and normalization."""

from __future__ import annotations

import re
import uuid
from pathlib import PurePosixPath

from .errors import NotFoundError

_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


def extract_extension(original_name: str | None) -> str:
    """
    Return the extension of an untrusted filename, dot included.

    Directory components (either separator style) are ignored. Extensions that
    are not short alphanumeric runs are dropped so they can never smuggle
    separators or traversal sequences into a storage name.
    """
    if not original_name:
        return ""
    base = PurePosixPath(original_name.replace("\\", "/")).name
    suffix = PurePosixPath(base).suffix
    if _EXTENSION_RE.match(suffix):
        return suffix
    return ""


def generate_storage_name(original_name: str | None = None) -> str:
    """
    Generate a collision-resistant storage name.

    Format: ``<uuid4><ext>``, e.g. ``0b6f...-9c3e.pdf``. Never fails.

    Args:
        original_name: Client-supplied filename; only its extension is used

    Returns:
        Storage name safe to use as a single path component
    """
    return f"{uuid.uuid4()}{extract_extension(original_name)}"


def normalize_storage_name(name: str | None) -> str:
    """
    Reduce a caller-supplied storage name to a single safe path component.

    Raises:
        NotFoundError: If the name is empty, hidden, contains NUL, or carries
            any directory component (``../x``, ``/etc/passwd``, ``a\\b``)
    """
    if not name or "\x00" in name:
        raise NotFoundError(name)

    base = PurePosixPath(name.replace("\\", "/")).name
    if base != name or base in ("", ".", "..") or base.startswith("."):
        raise NotFoundError(name)
    return base


def sanitize_original_name(original_name: str | None) -> str:
    """Strip directory components and control characters from a client filename."""
    if not original_name:
        return ""
    base = PurePosixPath(original_name.replace("\\", "/")).name
    return "".join(ch for ch in base if ch >= " " and ch != "\x7f").strip()
