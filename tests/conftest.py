# tests/conftest.py
import pytest
from unittest.mock import MagicMock
from pathlib import Path

from dropkeys.config import Settings, get_settings
from dropkeys.exceptions import ErrorKind, RemoteError
from dropkeys.storage.base import RemoteClient
from dropkeys.storage.dto import Metadata, SharedLink

MODIFIED = "Tue, 19 Jul 2011 21:55:38 +0000"
MODIFIED_EPOCH = 1311112538


class FakeRemoteClient(RemoteClient):
    """
    In-memory stand-in for a remote provider. Files live in `files`;
    `metadata` overrides what get_metadata returns for a given path.
    """

    def __init__(self):
        self.files = {}
        self.metadata = {}
        self.streams = []

    def _not_found(self, path):
        return RemoteError(ErrorKind.NOT_FOUND, path)

    def get_file(self, path):
        if path not in self.files:
            raise self._not_found(path)
        return self.files[path]

    def put_file(self, path, stream):
        self.streams.append(stream)
        self.files[path] = stream.read()

    def get_metadata(self, path, list_contents=False):
        if path in self.metadata:
            return self.metadata[path]
        if path == "/":
            contents = [Metadata(path=p, modified=MODIFIED) for p in self.files]
            return Metadata(path="/", is_dir=True, contents=contents)
        if path in self.files:
            return Metadata(path=path, modified=MODIFIED, size=len(self.files[path]))
        raise self._not_found(path)

    def delete(self, path):
        if path not in self.files:
            raise self._not_found(path)
        del self.files[path]

    def move(self, from_path, to_path):
        if from_path not in self.files:
            raise self._not_found(from_path)
        self.files[to_path] = self.files.pop(from_path)

    def share(self, path):
        return SharedLink(url=f"https://www.dropbox.com/s/abc123{path}")


@pytest.fixture
def fake_client():
    return FakeRemoteClient()


@pytest.fixture
def mock_client():
    """A RemoteClient whose every call can be scripted."""
    return MagicMock(spec=RemoteClient)


@pytest.fixture
def mock_settings():
    """
    Provides a mock of the application settings for testing.
    This avoids the need for environment variables during tests.
    """
    settings = MagicMock(spec=Settings)
    settings.DROPBOX_APP_KEY = "test_key"
    settings.DROPBOX_APP_SECRET = "test_secret"
    settings.DROPBOX_REFRESH_TOKEN = "test_token"
    settings.DROPBOX_REFRESH_TOKEN_FILE = None
    settings.refresh_token = "test_token"
    settings.DROPBOX_ROOT_DIR = "/app"
    settings.DROPBOX_UPLOAD_CHUNK_SIZE = 1024
    settings.LOG_LEVEL = "INFO"
    settings.LOG_FILE = None
    settings.TOKEN_STORAGE_FILE = ".dropbox.token"
    settings.BASE_DIR = Path("/tmp")
    return settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Never let a settings instance cached by one test leak into another."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
