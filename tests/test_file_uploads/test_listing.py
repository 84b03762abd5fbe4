"""Tests for the file catalog."""

from __future__ import annotations

from datetime import datetime

import pytest

from docvault.core.storage.file.listing import CatalogEntry, ListingService


@pytest.fixture
def listing(blob_store, ledger):
    return ListingService(blob_store, ledger, url_prefix="/api/files/")


@pytest.mark.asyncio
async def test_empty_store_lists_nothing(listing):
    assert await listing.list_all() == []


@pytest.mark.asyncio
async def test_entries_join_ledger_names(listing, blob_store, ledger, as_chunks):
    await blob_store.put("b.pdf", as_chunks(b"1234567890"))
    await ledger.append("b.pdf", "report.pdf")
    await blob_store.put("a.png", as_chunks(b"png"))

    entries = await listing.list_all()

    assert [e.storage_name for e in entries] == ["a.png", "b.pdf"]
    assert entries[0].original_name == "a.png"
    assert entries[1].original_name == "report.pdf"
    assert entries[1].size_bytes == 10
    assert isinstance(entries[1].created_at, datetime)


@pytest.mark.asyncio
async def test_urls_use_prefix(listing, blob_store, as_chunks):
    await blob_store.put("a.pdf", as_chunks(b"x"))

    entry = (await listing.list_all())[0]

    assert entry.view_url == "/api/files/view/a.pdf"
    assert entry.download_url == "/api/files/download/a.pdf"


@pytest.mark.asyncio
async def test_ledger_document_is_not_listed(listing, blob_store, ledger, as_chunks):
    await blob_store.put("a.pdf", as_chunks(b"x"))
    await ledger.append("a.pdf", "a.pdf")

    assert ledger.path.exists()
    assert [e.storage_name for e in await listing.list_all()] == ["a.pdf"]


@pytest.mark.asyncio
async def test_ledger_records_without_blob_are_skipped(listing, blob_store, ledger, as_chunks):
    await ledger.append("gone.pdf", "gone.pdf")
    await blob_store.put("here.pdf", as_chunks(b"x"))

    assert [e.storage_name for e in await listing.list_all()] == ["here.pdf"]


@pytest.mark.asyncio
async def test_temp_files_and_directories_are_skipped(listing, blob_store, upload_dir, as_chunks):
    await blob_store.put("a.pdf", as_chunks(b"x"))
    (upload_dir / ".tmp-abc").write_bytes(b"partial")
    (upload_dir / "subdir").mkdir()

    assert [e.storage_name for e in await listing.list_all()] == ["a.pdf"]


@pytest.mark.asyncio
async def test_listing_is_stable(listing, blob_store, ledger, as_chunks):
    for name in ("c.pdf", "a.pdf", "b.pdf"):
        await blob_store.put(name, as_chunks(b"x"))
        await ledger.append(name, f"orig-{name}")

    first = [e.to_dict() for e in await listing.list_all()]
    second = [e.to_dict() for e in await listing.list_all()]

    assert first == second


@pytest.mark.asyncio
async def test_corrupt_ledger_falls_back_to_storage_names(listing, blob_store, ledger, as_chunks):
    await blob_store.put("a.pdf", as_chunks(b"x"))
    ledger.path.write_text("not json")

    entries = await listing.list_all()

    assert [(e.storage_name, e.original_name) for e in entries] == [("a.pdf", "a.pdf")]


def test_entry_to_dict():
    created = datetime(2024, 1, 2, 3, 4, 5)
    entry = CatalogEntry("a.pdf", "report.pdf", 10, created,
                         "/api/files/view/a.pdf", "/api/files/download/a.pdf")

    assert entry.to_dict() == {
        "filename": "a.pdf",
        "originalname": "report.pdf",
        "size": 10,
        "createdAt": "2024-01-02T03:04:05",
        "url": "/api/files/view/a.pdf",
        "downloadUrl": "/api/files/download/a.pdf",
    }
