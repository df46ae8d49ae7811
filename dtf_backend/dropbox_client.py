"""
Dropbox API client for quote and logo storage.
Wraps upload, download, delete, folder listing and shared links as async calls.
Every call fetches a fresh access token from the TokenLifecycleManager.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, TypeVar, Union

import dropbox
import requests
from dropbox.exceptions import ApiError, DropboxException, HttpError
from dropbox.files import FileMetadata, WriteMode
from dropbox.sharing import LinkAudience, RequestedLinkAccessLevel, RequestedVisibility, SharedLinkSettings

from dtf_backend.auth.token_manager import TokenLifecycleManager
from dtf_backend.exceptions import NotFoundError, RemoteOperationError
from dtf_backend.metrics import StorageMetrics

T = TypeVar("T")


def _is_not_found(error: Any) -> bool:
    """Check whether an ApiError payload is a path lookup not_found."""
    for check, get in (("is_path", "get_path"), ("is_path_lookup", "get_path_lookup")):
        if hasattr(error, check) and getattr(error, check)():
            lookup = getattr(error, get)()
            return hasattr(lookup, "is_not_found") and lookup.is_not_found()
    return False


def _raw_url(url: str) -> str:
    """Turn a shared-link preview URL into a direct-content URL."""
    return url.replace("?dl=0", "?raw=1")


class DropboxClient:
    """Async client for the Dropbox file operations the storage gateway needs."""

    def __init__(
        self,
        token_manager: TokenLifecycleManager,
        metrics: Optional[StorageMetrics] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize Dropbox client.

        Args:
            token_manager: Source of valid access tokens
            metrics: Optional metrics collector
            timeout: HTTP timeout in seconds (SDK default if None)
        """
        self.token_manager = token_manager
        self.metrics = metrics
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        # One connection pool shared by every per-call Dropbox instance
        self.session = dropbox.create_session()

    def _make_dbx(self, access_token: str) -> dropbox.Dropbox:
        kwargs = {"timeout": self.timeout} if self.timeout else {}
        return dropbox.Dropbox(oauth2_access_token=access_token, session=self.session, **kwargs)

    async def _call(self, operation: str, path: str, fn: Callable[[dropbox.Dropbox], T]) -> T:
        """
        Run one SDK call in a worker thread with a freshly validated token.

        Raises:
            TokenRefreshError: If no valid token can be obtained
            NotFoundError: If the path does not exist
            RemoteOperationError: For any other API or transport failure
        """
        access_token = await self.token_manager.get_valid_token()
        if self.metrics:
            self.metrics.increment_api_call(operation)

        def run() -> T:
            return fn(self._make_dbx(access_token))

        try:
            return await asyncio.to_thread(run)
        except ApiError as e:
            if _is_not_found(e.error):
                raise NotFoundError(f"Not found: {path}", path=path) from e
            self._record_error(operation, path, e)
            raise RemoteOperationError(operation, path, status=409, upstream_detail=str(e.error)) from e
        except HttpError as e:
            self._record_error(operation, path, e)
            detail = str(e.body) if e.body is not None else str(e)
            raise RemoteOperationError(operation, path, status=e.status_code, upstream_detail=detail) from e
        except (DropboxException, requests.RequestException) as e:
            self._record_error(operation, path, e)
            raise RemoteOperationError(operation, path, upstream_detail=str(e)) from e

    def _record_error(self, operation: str, path: str, error: Exception) -> None:
        self.logger.error(f"Error during {operation} of '{path}': {error}")
        if self.metrics:
            self.metrics.record_remote_error()

    async def upload(self, path: str, content: Union[bytes, str]) -> FileMetadata:
        """
        Upload a file, overwriting whatever is at ``path``.

        Args:
            path: Destination path in Dropbox
            content: File content; str is encoded as UTF-8

        Returns:
            FileMetadata of the stored file
        """
        if isinstance(content, str):
            content = content.encode("utf-8")

        self.logger.debug(f"Uploading {len(content)} bytes to {path}")
        return await self._call(
            "upload",
            path,
            lambda dbx: dbx.files_upload(content, path, mode=WriteMode.overwrite, autorename=False),
        )

    async def download(self, path: str) -> bytes:
        """
        Download the full content of a file.

        Raises:
            NotFoundError: If the file does not exist
        """

        def download(dbx: dropbox.Dropbox) -> bytes:
            metadata, response = dbx.files_download(path)
            return response.content

        self.logger.debug(f"Downloading: {path}")
        return await self._call("download", path, download)

    async def download_text(self, path: str) -> str:
        """
        Download a file and decode it as UTF-8.

        Raises:
            NotFoundError: If the file does not exist
            RemoteOperationError: If the stored bytes are not valid UTF-8
        """
        content = await self.download(path)
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            self._record_error("download", path, e)
            raise RemoteOperationError("download", path, upstream_detail=str(e)) from e

    async def delete(self, path: str) -> None:
        """
        Delete a file.

        Raises:
            NotFoundError: If the file does not exist
        """
        self.logger.info(f"Deleting: {path}")
        await self._call("delete", path, lambda dbx: dbx.files_delete_v2(path))

    async def list_folder(self, folder_path: str) -> List[FileMetadata]:
        """
        List the files directly inside a folder (non-recursive).

        Folders are skipped. Pagination is followed until ``has_more`` is False;
        every page is a separate API call with its own token check.
        """
        self.logger.info(f"Listing files in: {folder_path}")

        result = await self._call(
            "list_folder", folder_path, lambda dbx: dbx.files_list_folder(folder_path, recursive=False)
        )
        files = [entry for entry in result.entries if isinstance(entry, FileMetadata)]

        while result.has_more:
            cursor = result.cursor
            result = await self._call(
                "list_folder", folder_path, lambda dbx: dbx.files_list_folder_continue(cursor)
            )
            files.extend(entry for entry in result.entries if isinstance(entry, FileMetadata))

        return files

    async def create_shared_link(self, path: str) -> str:
        """
        Get a public, direct-content URL for a file.

        Creates a new shared link; if that fails (typically because a link
        already exists) the existing direct links are listed instead.

        Returns:
            Shared URL with ``?dl=0`` replaced by ``?raw=1``

        Raises:
            RemoteOperationError: If no link could be created or found
        """
        settings = SharedLinkSettings(
            requested_visibility=RequestedVisibility.public,
            audience=LinkAudience.public,
            access=RequestedLinkAccessLevel.viewer,
        )
        try:
            link = await self._call(
                "create_shared_link",
                path,
                lambda dbx: dbx.sharing_create_shared_link_with_settings(path, settings=settings),
            )
            return _raw_url(link.url)
        except (RemoteOperationError, NotFoundError) as create_error:
            try:
                result = await self._call(
                    "list_shared_links",
                    path,
                    lambda dbx: dbx.sharing_list_shared_links(path=path, direct_only=True),
                )
                if result.links:
                    return _raw_url(result.links[0].url)
            except (RemoteOperationError, NotFoundError) as list_error:
                self.logger.warning(f"Could not list existing shared links for '{path}': {list_error}")
            raise create_error
