"""Tests for RetrievalService and Content-Disposition building."""

from __future__ import annotations

import pytest

from docvault.core.storage.file.backend import BlobStream
from docvault.core.storage.file.errors import NotFoundError, StreamInterruptedError
from docvault.core.storage.file.retrieval import (
    RetrievalMode,
    RetrievalService,
    content_disposition,
    encode_uri_component,
)


@pytest.fixture
def retrieval(blob_store, ledger):
    return RetrievalService(blob_store, ledger)


@pytest.fixture
async def stored(blob_store, ledger, as_chunks):
    """A 10-byte PDF recorded under its original name."""
    name = "0f8fad5b-d9cb-469f-a165-70867728950e.pdf"
    await blob_store.put(name, as_chunks(b"%PDF-1.4\n\n"))
    await ledger.append(name, "report.pdf")
    return name


class TestContentDisposition:
    def test_attachment_plain_name(self):
        assert content_disposition(
            RetrievalMode.ATTACHMENT, "report.pdf") == 'attachment; filename="report.pdf"'

    def test_attachment_is_percent_encoded(self):
        value = content_disposition(RetrievalMode.ATTACHMENT, 'my "report" (1).pdf')
        assert value == 'attachment; filename="my%20%22report%22%20(1).pdf"'

    def test_inline_escapes_quotes_and_backslashes(self):
        value = content_disposition(RetrievalMode.INLINE, 'a"b\\c.pdf')
        assert value == 'inline; filename="a\\"b\\\\c.pdf"'

    def test_inline_non_ascii_gets_extended_parameter(self):
        value = content_disposition(RetrievalMode.INLINE, "résumé.pdf")
        assert value == (
            "inline; filename=\"r?sum?.pdf\"; "
            "filename*=UTF-8''r%C3%A9sum%C3%A9.pdf")
        assert value.isascii()

    def test_control_characters_are_dropped(self):
        value = content_disposition(RetrievalMode.INLINE, "evil\r\nX-Injected: 1.pdf")
        assert "\r" not in value and "\n" not in value

    def test_encode_uri_component_matches_browser_behaviour(self):
        assert encode_uri_component("a b/c?d=e&f!*'()~") == "a%20b%2Fc%3Fd%3De%26f!*'()~"


@pytest.mark.asyncio
async def test_inline_resolution(retrieval, stored):
    resolved = await retrieval.resolve(stored, RetrievalMode.INLINE)

    assert resolved.mime_type == "application/pdf"
    assert resolved.display_name == "report.pdf"
    assert resolved.headers == {
        "Content-Type": "application/pdf",
        "Content-Disposition": 'inline; filename="report.pdf"',
        "X-Content-Type-Options": "nosniff",
        "Content-Length": "10",
    }
    assert await resolved.read_all() == b"%PDF-1.4\n\n"


@pytest.mark.asyncio
async def test_attachment_resolution(retrieval, stored):
    resolved = await retrieval.resolve(stored, "attachment")

    assert resolved.mode == RetrievalMode.ATTACHMENT
    assert resolved.headers["Content-Disposition"] == 'attachment; filename="report.pdf"'
    assert await resolved.read_all() == b"%PDF-1.4\n\n"


@pytest.mark.asyncio
async def test_unknown_to_ledger_uses_storage_name(retrieval, blob_store, as_chunks):
    await blob_store.put("orphan.png", as_chunks(b"\x89PNG"))

    resolved = await retrieval.resolve("orphan.png", RetrievalMode.ATTACHMENT)

    assert resolved.display_name == "orphan.png"
    assert resolved.mime_type == "image/png"
    assert resolved.headers["Content-Disposition"] == 'attachment; filename="orphan.png"'
    await resolved.stream.aclose()


@pytest.mark.asyncio
async def test_type_comes_from_extension_not_declaration(retrieval, blob_store, ledger, as_chunks):
    """Whatever the client once claimed, the served type follows the name."""
    await blob_store.put("x.bin", as_chunks(b"MZ"))
    await ledger.append("x.bin", "invoice.pdf")

    resolved = await retrieval.resolve("x.bin")

    assert resolved.mime_type == "application/octet-stream"
    assert resolved.display_name == "invoice.pdf"
    await resolved.stream.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("name", [
    "missing.pdf",
    "../etc/passwd",
    "..",
    "/etc/passwd",
    "a/b.pdf",
    "..\\secret.pdf",
    "fileMetadata.json",
    ".tmp-partial",
    "",
])
async def test_unresolvable_names_are_not_found(retrieval, stored, name):
    with pytest.raises(NotFoundError):
        await retrieval.resolve(name)


@pytest.mark.asyncio
async def test_ledger_corruption_does_not_block_retrieval(retrieval, stored, ledger):
    ledger.path.write_text("{broken")

    resolved = await retrieval.resolve(stored, RetrievalMode.ATTACHMENT)

    assert resolved.display_name == stored
    assert await resolved.read_all() == b"%PDF-1.4\n\n"


@pytest.mark.asyncio
async def test_mid_stream_failure_raises_stream_interrupted(retrieval, stored, blob_store, monkeypatch):
    closed = []

    async def failing_chunks():
        yield b"%PDF"
        raise OSError("device went away")

    async def fake_get(storage_name):
        return BlobStream(storage_name, failing_chunks(), on_close=lambda: closed.append(True))

    monkeypatch.setattr(blob_store, "get", fake_get)

    resolved = await retrieval.resolve(stored)
    received = []
    with pytest.raises(StreamInterruptedError):
        async for chunk in resolved.stream:
            received.append(chunk)

    assert received == [b"%PDF"]
    assert closed == [True]


@pytest.mark.asyncio
async def test_stat_failure_closes_opened_blob(retrieval, stored, blob_store, monkeypatch):
    closed = []
    real_get = blob_store.get

    async def tracking_get(storage_name):
        blob = await real_get(storage_name)
        close_handle = blob._on_close
        blob._on_close = lambda: (close_handle(), closed.append(True))
        return blob

    async def failing_stat(storage_name):
        raise NotFoundError(storage_name)

    monkeypatch.setattr(blob_store, "get", tracking_get)
    monkeypatch.setattr(blob_store, "stat", failing_stat)

    with pytest.raises(NotFoundError):
        await retrieval.resolve(stored)
    assert closed == [True]
