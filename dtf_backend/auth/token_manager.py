"""
Access token lifecycle for the Dropbox API.

Owns the single process-wide access token, decides when it must be refreshed
and performs the refresh-token exchange against ``oauth2/token``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import timezone
from typing import Optional

import dropbox
import requests
from dropbox.exceptions import DropboxException, HttpError

from dtf_backend.auth.constants import TOKEN_EXPIRY_BUFFER_SECONDS
from dtf_backend.auth.credentials import CredentialSet
from dtf_backend.exceptions import TokenRefreshError
from dtf_backend.metrics import StorageMetrics


@dataclass(frozen=True)
class AccessToken:
    """An access token paired with the epoch time at which it expires."""

    token: str
    expires_at: float

    def is_expired(self, now: float, buffer_seconds: int = TOKEN_EXPIRY_BUFFER_SECONDS) -> bool:
        """True if the token expires within ``buffer_seconds`` of ``now``."""
        return now >= self.expires_at - buffer_seconds


class TokenLifecycleManager:
    """
    Hands out access tokens that are valid for at least the next operation.

    The current token is held as one immutable ``AccessToken`` and replaced as a
    whole, so readers never see a token paired with another token's expiry.
    Check-and-refresh runs under an ``asyncio.Lock``; tasks that queued behind
    a refresh re-check freshness and reuse its result instead of issuing
    their own exchange.
    """

    def __init__(
        self,
        credentials: CredentialSet,
        metrics: Optional[StorageMetrics] = None,
        timeout: Optional[float] = None,
        buffer_seconds: int = TOKEN_EXPIRY_BUFFER_SECONDS,
    ):
        """
        Initialize the token manager.

        Args:
            credentials: App key, app secret and refresh token
            metrics: Optional metrics collector
            timeout: HTTP timeout for the exchange (SDK default if None)
            buffer_seconds: Safety margin subtracted from the expiry time
        """
        self.credentials = credentials
        self.metrics = metrics
        self.timeout = timeout
        self.buffer_seconds = buffer_seconds
        self.logger = logging.getLogger(__name__)

        self._current: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    @property
    def access_token(self) -> Optional[str]:
        current = self._current
        return current.token if current else None

    @property
    def expires_at(self) -> Optional[float]:
        current = self._current
        return current.expires_at if current else None

    def needs_refresh(self) -> bool:
        """True if no token is cached or the cached one is inside the buffer window."""
        current = self._current
        return current is None or current.is_expired(time.time(), self.buffer_seconds)

    async def ensure_fresh(self) -> None:
        """Refresh the access token if it is missing or about to expire."""
        if not self.needs_refresh():
            return

        async with self._lock:
            # Another task may have refreshed while we waited for the lock
            if self.needs_refresh():
                await self.refresh()

    async def refresh(self) -> AccessToken:
        """
        Exchange the refresh token for a new access token.

        Returns:
            The newly stored AccessToken

        Raises:
            ConfigurationError: If app key, app secret or refresh token is missing
            TokenRefreshError: If the exchange fails; the cached token is left as is
        """
        self.credentials.require()

        self.logger.info("Refreshing Dropbox access token...")
        if self.metrics:
            self.metrics.increment_api_call("token_refresh")

        try:
            token = await asyncio.to_thread(self._exchange_refresh_token)
        except TokenRefreshError as e:
            if self.metrics:
                self.metrics.record_token_refresh_failure()
            self.logger.error(f"Token refresh failed: {e}")
            raise

        self._current = token
        self.logger.info(f"Token refreshed successfully. Expires at: {time.ctime(token.expires_at)}")
        return token

    async def get_valid_token(self) -> str:
        """Return an access token valid beyond the buffer window."""
        await self.ensure_fresh()
        return self._current.token

    async def refresh_token_if_needed(self) -> str:
        """Entry point for the periodic refresh scheduler."""
        return await self.get_valid_token()

    def _exchange_refresh_token(self) -> AccessToken:
        """
        Perform the blocking ``grant_type=refresh_token`` exchange.

        The SDK posts the form-encoded exchange and records the returned token
        and expiry on private attributes; there is no public accessor for
        either, so they are read directly.
        """
        kwargs = {"timeout": self.timeout} if self.timeout else {}
        dbx = dropbox.Dropbox(
            oauth2_refresh_token=self.credentials.refresh_token,
            app_key=self.credentials.app_key,
            app_secret=self.credentials.app_secret,
            **kwargs,
        )
        try:
            dbx.refresh_access_token()
        except HttpError as e:
            detail = str(e.body) if e.body is not None else str(e)
            raise TokenRefreshError(
                f"Failed to refresh token: HTTP {e.status_code}", upstream_detail=detail, status=e.status_code
            ) from e
        except (DropboxException, requests.RequestException) as e:
            raise TokenRefreshError(f"Failed to refresh token: {e}", upstream_detail=str(e)) from e
        except (KeyError, ValueError) as e:
            raise TokenRefreshError("Failed to refresh token: malformed response body", upstream_detail=str(e)) from e
        finally:
            # Each exchange opens its own requests session
            dbx.close()

        access_token = getattr(dbx, "_oauth2_access_token", None)
        expiration = getattr(dbx, "_oauth2_access_token_expiration", None)
        if not access_token or expiration is None:
            raise TokenRefreshError("Failed to refresh token: response did not include an access token")

        # SDK stores a naive UTC datetime
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)

        return AccessToken(token=access_token, expires_at=expiration.timestamp())
