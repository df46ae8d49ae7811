"""Unit tests for DropboxClient."""

from unittest.mock import MagicMock, Mock, patch

import pytest
import requests
from dropbox.exceptions import ApiError, AuthError, HttpError
from dropbox.files import FileMetadata, FolderMetadata, WriteMode

from dtf_backend.dropbox_client import DropboxClient, _is_not_found, _raw_url
from dtf_backend.exceptions import NotFoundError, RemoteOperationError, TokenRefreshError
from dtf_backend.metrics import StorageMetrics


def make_not_found_error():
    """Build an ApiError whose payload is a path lookup not_found."""
    lookup = Mock()
    lookup.is_not_found.return_value = True
    error = Mock()
    error.is_path.return_value = True
    error.get_path.return_value = lookup
    return ApiError("test", error, "Not found", "en")


def make_file(name: str) -> MagicMock:
    entry = MagicMock(spec=FileMetadata)
    entry.name = name
    entry.path_lower = f"/dtf-quotes/{name}"
    return entry


@pytest.fixture
def token_manager():
    manager = Mock()

    async def get_valid_token():
        return "test_access_token"

    manager.get_valid_token = Mock(side_effect=get_valid_token)
    return manager


@pytest.fixture
def client(token_manager):
    return DropboxClient(token_manager, metrics=StorageMetrics())


class TestHelpers:
    """Test module helpers."""

    def test_raw_url(self):
        assert _raw_url("https://www.dropbox.com/s/abc/q.html?dl=0") == "https://www.dropbox.com/s/abc/q.html?raw=1"

    def test_raw_url_leaves_other_urls(self):
        assert _raw_url("https://example.com/q.html") == "https://example.com/q.html"

    def test_is_not_found_path(self):
        assert _is_not_found(make_not_found_error().error) is True

    def test_is_not_found_path_lookup(self):
        lookup = Mock()
        lookup.is_not_found.return_value = True
        error = Mock()
        error.is_path.return_value = False
        error.is_path_lookup.return_value = True
        error.get_path_lookup.return_value = lookup
        assert _is_not_found(error) is True

    def test_is_not_found_other_error(self):
        assert _is_not_found("path_not_found") is False


class TestFileOperations:
    """Test upload, download, delete and listing."""

    async def test_upload_encodes_text_and_overwrites(self, client, token_manager):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dbx = mock_dropbox_class.return_value

            await client.upload("/dtf-quotes/q1_metadata.json", '{"id": "q1"}')

            mock_dbx.files_upload.assert_called_once_with(
                b'{"id": "q1"}', "/dtf-quotes/q1_metadata.json", mode=WriteMode.overwrite, autorename=False
            )
            assert mock_dropbox_class.call_args.kwargs["oauth2_access_token"] == "test_access_token"
        token_manager.get_valid_token.assert_called_once()
        assert client.metrics.api_calls["upload"] == 1

    async def test_download(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            response = Mock()
            response.content = b"<html></html>"
            mock_dropbox_class.return_value.files_download.return_value = (Mock(), response)

            assert await client.download_text("/dtf-quotes/a.html") == "<html></html>"

    async def test_download_text_rejects_non_utf8(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            response = Mock()
            response.content = b"\xff\xfe\xfa"
            mock_dropbox_class.return_value.files_download.return_value = (Mock(), response)

            with pytest.raises(RemoteOperationError) as exc_info:
                await client.download_text("/dtf-quotes/a.html")

        assert exc_info.value.operation == "download"
        assert exc_info.value.path == "/dtf-quotes/a.html"
        assert "utf-8" in exc_info.value.upstream_detail
        assert client.metrics.remote_errors == 1

    async def test_download_not_found(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dropbox_class.return_value.files_download.side_effect = make_not_found_error()

            with pytest.raises(NotFoundError) as exc_info:
                await client.download("/dtf-quotes/missing.json")

        assert exc_info.value.path == "/dtf-quotes/missing.json"
        assert client.metrics.remote_errors == 0

    async def test_other_api_error_is_remote_error(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dropbox_class.return_value.files_delete_v2.side_effect = ApiError(
                "test", "path_write_error", "Cannot delete", "en"
            )

            with pytest.raises(RemoteOperationError) as exc_info:
                await client.delete("/dtf-quotes/a.html")

        assert exc_info.value.operation == "delete"
        assert exc_info.value.status == 409
        assert client.metrics.remote_errors == 1

    async def test_http_error_is_remote_error(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dropbox_class.return_value.files_upload.side_effect = HttpError("test", 503, "Service Unavailable")

            with pytest.raises(RemoteOperationError) as exc_info:
                await client.upload("/dtf-quotes/a.html", b"x")

        assert exc_info.value.status == 503
        assert exc_info.value.upstream_detail == "Service Unavailable"

    async def test_auth_error_is_remote_error(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dropbox_class.return_value.files_download.side_effect = AuthError("test", "invalid_access_token")

            with pytest.raises(RemoteOperationError) as exc_info:
                await client.download("/dtf-quotes/a.html")

        assert exc_info.value.status == 401

    async def test_network_error_is_remote_error(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dropbox_class.return_value.files_download.side_effect = requests.ConnectionError("reset")

            with pytest.raises(RemoteOperationError, match="Dropbox download failed"):
                await client.download("/dtf-quotes/a.html")

    async def test_token_error_propagates_without_remote_call(self, client, token_manager):
        token_manager.get_valid_token.side_effect = TokenRefreshError("Failed to refresh token")

        with patch("dropbox.Dropbox") as mock_dropbox_class:
            with pytest.raises(TokenRefreshError):
                await client.download("/dtf-quotes/a.html")

            mock_dropbox_class.assert_not_called()

    async def test_list_folder_skips_folders_and_follows_cursor(self, client, token_manager):
        folder = MagicMock(spec=FolderMetadata)
        page1 = Mock(entries=[make_file("a_metadata.json"), folder], has_more=True, cursor="cursor1")
        page2 = Mock(entries=[make_file("b_metadata.json")], has_more=False, cursor="cursor2")

        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dbx = mock_dropbox_class.return_value
            mock_dbx.files_list_folder.return_value = page1
            mock_dbx.files_list_folder_continue.return_value = page2

            files = await client.list_folder("/dtf-quotes")

            mock_dbx.files_list_folder.assert_called_once_with("/dtf-quotes", recursive=False)
            mock_dbx.files_list_folder_continue.assert_called_once_with("cursor1")

        assert [entry.name for entry in files] == ["a_metadata.json", "b_metadata.json"]
        assert token_manager.get_valid_token.call_count == 2
        assert client.metrics.api_calls["list_folder"] == 2


class TestSharedLinks:
    """Test shared link creation and fallback."""

    async def test_create_shared_link(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dbx = mock_dropbox_class.return_value
            mock_dbx.sharing_create_shared_link_with_settings.return_value = Mock(
                url="https://www.dropbox.com/s/abc/q.html?dl=0"
            )

            url = await client.create_shared_link("/dtf-quotes/q.html")

            settings = mock_dbx.sharing_create_shared_link_with_settings.call_args.kwargs["settings"]
            assert settings.requested_visibility.is_public()

        assert url == "https://www.dropbox.com/s/abc/q.html?raw=1"

    async def test_falls_back_to_existing_link(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dbx = mock_dropbox_class.return_value
            mock_dbx.sharing_create_shared_link_with_settings.side_effect = ApiError(
                "test", "shared_link_already_exists", "Exists", "en"
            )
            mock_dbx.sharing_list_shared_links.return_value = Mock(
                links=[Mock(url="https://www.dropbox.com/s/old/q.html?dl=0")]
            )

            url = await client.create_shared_link("/dtf-quotes/q.html")

            mock_dbx.sharing_list_shared_links.assert_called_once_with(path="/dtf-quotes/q.html", direct_only=True)

        assert url == "https://www.dropbox.com/s/old/q.html?raw=1"

    async def test_no_existing_link_raises_create_error(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dbx = mock_dropbox_class.return_value
            mock_dbx.sharing_create_shared_link_with_settings.side_effect = HttpError("test", 500, "boom")
            mock_dbx.sharing_list_shared_links.return_value = Mock(links=[])

            with pytest.raises(RemoteOperationError) as exc_info:
                await client.create_shared_link("/dtf-quotes/q.html")

        assert exc_info.value.operation == "create_shared_link"

    async def test_list_failure_raises_create_error(self, client):
        with patch("dropbox.Dropbox") as mock_dropbox_class:
            mock_dbx = mock_dropbox_class.return_value
            mock_dbx.sharing_create_shared_link_with_settings.side_effect = HttpError("test", 500, "boom")
            mock_dbx.sharing_list_shared_links.side_effect = HttpError("test", 500, "still boom")

            with pytest.raises(RemoteOperationError) as exc_info:
                await client.create_shared_link("/dtf-quotes/q.html")

        assert exc_info.value.operation == "create_shared_link"
