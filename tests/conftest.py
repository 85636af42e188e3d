# tests/conftest.py
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
from pydantic import SecretStr

from fakes import TEST_TOKEN, FakeStretchFS
from stretchfs_storage.adapter import StretchFSAdapter
from stretchfs_storage.config import Settings, StorageConfig, get_settings
from stretchfs_storage.stretchfs import StretchFSClient


@pytest.fixture
def mock_settings():
    """
    Provides a mock of the application settings for testing.
    This avoids the need for environment variables during tests.
    """
    settings = MagicMock(spec=Settings)
    settings.STRETCHFS_ENDPOINT = "sfs.example.test"
    settings.STRETCHFS_TOKEN = SecretStr(TEST_TOKEN)
    settings.STRETCHFS_TIMEOUT = 5.0
    settings.STRETCHFS_CHUNK_SIZE = 1024
    settings.STRETCHFS_DETAIL_CACHE_TTL = 0.0
    settings.LOG_LEVEL = "INFO"
    settings.LOG_FILE = None
    settings.storage_config.return_value = StorageConfig(
        endpoint="sfs.example.test", auth_token=TEST_TOKEN, timeout=5.0, chunk_size=1024
    )
    return settings


@pytest.fixture(autouse=True)
def patch_settings_class(monkeypatch, mock_settings):
    """
    Replaces the `Settings` constructor so that nothing in the package loads
    real settings from the environment during a test run.
    """
    get_settings.cache_clear()
    monkeypatch.setattr(
        "stretchfs_storage.config.Settings", lambda *args, **kwargs: mock_settings
    )
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage_config():
    return StorageConfig(endpoint="sfs.example.test", auth_token=TEST_TOKEN, chunk_size=1024)


@pytest.fixture
def fake_backend():
    return FakeStretchFS()


@pytest.fixture
def client(storage_config, fake_backend):
    """A real StretchFSClient talking to the in-memory backend."""
    http = httpx.Client(transport=httpx.MockTransport(fake_backend.handler))
    client_instance = StretchFSClient(storage_config, http_client=http)
    yield client_instance
    http.close()


@pytest.fixture
def adapter(client):
    return StretchFSAdapter(client)


@pytest.fixture
def mock_storage_client():
    """Fixture for a mock storage client."""
    return MagicMock()


@pytest.fixture
def tmp_log_file(tmp_path) -> Path:
    return tmp_path / "app.log"
