"""Shared test fixtures and configuration."""

import logging
from types import SimpleNamespace
from typing import Dict, List, Union
from unittest.mock import MagicMock, patch

import pytest

from dtf_backend.audit import AUDIT_LOGGER_NAME
from dtf_backend.exceptions import NotFoundError, RemoteOperationError
from dtf_backend.metrics import StorageMetrics
from dtf_backend.storage_gateway import StorageGateway


@pytest.fixture(autouse=True)
def isolate_keyring():
    """
    Automatically mock keyring module for all tests to prevent tests from accessing
    real system keyring and to ensure test isolation.

    This fixture mocks the keyring module at import time, which ensures that
    TokenStorage.__init__ gets the mocked keyring instead of the real one.
    """
    mock_keyring_module = MagicMock()
    mock_keyring_module.get_password.return_value = None
    mock_keyring_module.set_password.return_value = None
    mock_keyring_module.delete_password.return_value = None

    with patch.dict("sys.modules", {"keyring": mock_keyring_module}):
        yield mock_keyring_module


@pytest.fixture(autouse=True)
def isolate_dropbox_env(monkeypatch):
    """Keep developer credentials and deployment settings out of the tests."""
    for name in ("DROPBOX_APP_KEY", "DROPBOX_APP_SECRET", "DROPBOX_REFRESH_TOKEN", "PORT", "ALLOWED_ORIGINS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_audit_logger():
    """Drop file handlers a test attached to the audit logger."""
    yield
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    for handler in audit_logger.handlers[:]:
        audit_logger.removeHandler(handler)
        handler.close()
    audit_logger.propagate = True


class FakeTokenManager:
    """Stands in for TokenLifecycleManager; hands out a fixed token."""

    def __init__(self, token: str = "test_access_token"):
        self.token = token
        self.calls = 0
        self.error = None

    async def get_valid_token(self) -> str:
        self.calls += 1
        if self.error:
            raise self.error
        return self.token

    async def refresh_token_if_needed(self) -> str:
        return await self.get_valid_token()


class FakeDropboxClient:
    """
    In-memory DropboxClient.

    Paths are looked up case-insensitively like Dropbox does. ``fail`` maps an
    operation name ("upload", "download", "delete", "list_folder",
    "create_shared_link") or "operation:path" to the exception to raise.
    """

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.fail: Dict[str, Exception] = {}
        self.calls: List[tuple] = []

    def _check(self, operation: str, path: str) -> None:
        self.calls.append((operation, path))
        error = self.fail.get(f"{operation}:{path}") or self.fail.get(operation)
        if error:
            raise error

    async def upload(self, path: str, content: Union[bytes, str]):
        self._check("upload", path)
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.files[path.lower()] = content
        return SimpleNamespace(path_lower=path.lower())

    async def download(self, path: str) -> bytes:
        self._check("download", path)
        try:
            return self.files[path.lower()]
        except KeyError:
            raise NotFoundError(f"Not found: {path}", path=path)

    async def download_text(self, path: str) -> str:
        content = await self.download(path)
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RemoteOperationError("download", path, upstream_detail=str(e)) from e

    async def delete(self, path: str) -> None:
        self._check("delete", path)
        if path.lower() not in self.files:
            raise NotFoundError(f"Not found: {path}", path=path)
        del self.files[path.lower()]

    async def list_folder(self, folder_path: str):
        self._check("list_folder", folder_path)
        prefix = folder_path.lower().rstrip("/") + "/"
        entries = [
            SimpleNamespace(name=path[len(prefix):], path_lower=path)
            for path in sorted(self.files)
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        ]
        if not entries:
            raise NotFoundError(f"Not found: {folder_path}", path=folder_path)
        return entries

    async def create_shared_link(self, path: str) -> str:
        self._check("create_shared_link", path)
        return f"https://www.dropbox.com/s/abc{path}?raw=1"

    def exists(self, path: str) -> bool:
        return path.lower() in self.files


@pytest.fixture
def fake_client():
    return FakeDropboxClient()


@pytest.fixture
def metrics():
    return StorageMetrics()


@pytest.fixture
def gateway(fake_client, metrics):
    return StorageGateway(fake_client, metrics=metrics)


@pytest.fixture
def sample_quote():
    return {
        "id": "q1",
        "quote_name": "Order #1",
        "customer_id": "A",
        "customer_email": "a@example.com",
        "date_created": "2024-01-01T00:00:00Z",
        "data": {"total_transfers": "10", "retail_total": "$50.00"},
        "locations": [{"name": "Front", "width": 10, "height": 12, "quantity": 10}],
    }


@pytest.fixture
def remote_error():
    return RemoteOperationError("download", "/dtf-quotes/x", status=500, upstream_detail="boom")
