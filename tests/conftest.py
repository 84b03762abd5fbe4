"""
docvault test configuration.

This module provides pytest fixtures for:
- Environment isolation from DOCVAULT_* variables
- Logger setup writing to the pytest temp directory
- Core components (blob store, ledger, validator, file manager)
- API client with its own upload directory
"""

import os
import pytest
import yaml
from fastapi.testclient import TestClient

from docvault.config.settings import ConfigManager
from docvault.core.storage.file import (
    FileManager,
    FileValidator,
    LocalBlobStore,
    MetadataLedger,
)
from docvault.logging.setup import reset_logging, setup_logging

LEDGER_NAME = "fileMetadata.json"


@pytest.fixture(scope="session", autouse=True)
def clear_env_vars():
    """
    Clear DOCVAULT environment variables at session start so a developer's
    shell or .env file cannot leak into the tests.
    """
    original_values = {
        key: value for key, value in os.environ.items()
        if key.startswith("DOCVAULT_")
    }
    for key in original_values:
        del os.environ[key]

    yield

    os.environ.update(original_values)


@pytest.fixture(scope="session", autouse=True)
def setup_logger(tmp_path_factory):
    """Log to a file in the pytest temp directory."""
    log_dir = tmp_path_factory.mktemp("logs")
    reset_logging()
    setup_logging({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "file": {
                "class": "logging.FileHandler",
                "level": "DEBUG",
                "formatter": "standard",
                "filename": str(log_dir / "docvault.log"),
            }
        },
        "root": {"level": "DEBUG", "handlers": ["file"]},
    })
    yield
    reset_logging()


@pytest.fixture
def upload_dir(tmp_path):
    """Blob directory (not created up front)."""
    return tmp_path / "uploads"


@pytest.fixture
def blob_store(upload_dir):
    return LocalBlobStore(upload_dir, reserved_names=(LEDGER_NAME,), chunk_size=4)


@pytest.fixture
def ledger(upload_dir):
    return MetadataLedger(upload_dir / LEDGER_NAME)


@pytest.fixture
def validator():
    return FileValidator()


@pytest.fixture
def file_manager(blob_store, ledger, validator):
    return FileManager(blob_store, ledger, validator)


@pytest.fixture
def as_chunks():
    """Turn bytes into an async chunk stream."""
    async def _as_chunks(data: bytes, size: int = 1024):
        for start in range(0, len(data), size):
            yield data[start:start + size]
    return _as_chunks


@pytest.fixture
def config_path(tmp_path, upload_dir):
    """Write a config file pointing at the test upload directory."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "storage": {"upload_dir": str(upload_dir)},
        "uploads": {"max_file_size_mb": 25},
        "api": {"environment": "test"},
    }))
    return path


@pytest.fixture
def api_client(config_path, monkeypatch):
    """
    API client backed by a fresh upload directory.

    The app module is imported after the config path is set so its
    module-level configuration load finds the test config.
    """
    monkeypatch.setenv("DOCVAULT_CONFIG_PATH", str(config_path))
    ConfigManager.reset_instance()
    ConfigManager.get_instance().load(str(config_path))

    from docvault.main import app

    with TestClient(app, base_url="http://testserver") as client:
        yield client

    ConfigManager.reset_instance()
