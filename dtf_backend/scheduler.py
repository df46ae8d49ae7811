"""
Periodic access token refresh.

Runs refresh_token_if_needed() once at startup and then on a fixed interval
(hourly by default), so request handlers rarely pay for a refresh themselves.
"""

import asyncio
import logging
from typing import Optional

from dtf_backend.auth.token_manager import TokenLifecycleManager
from dtf_backend.config_loader import DEFAULT_REFRESH_INTERVAL_SECONDS
from dtf_backend.exceptions import DTFBackendError


class TokenRefreshScheduler:
    """Background asyncio task that keeps the shared access token fresh."""

    def __init__(self, token_manager: TokenLifecycleManager, interval_seconds: int = DEFAULT_REFRESH_INTERVAL_SECONDS):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.token_manager = token_manager
        self.interval_seconds = interval_seconds
        self.logger = logging.getLogger(__name__)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """
        Refresh the token if needed.

        Returns:
            True if a valid token is available afterwards, False if the refresh failed
        """
        try:
            await self.token_manager.refresh_token_if_needed()
        except DTFBackendError as e:
            self.logger.error(f"Scheduled token refresh failed: {e}")
            return False
        except Exception as e:
            self.logger.error(f"Unexpected error during scheduled token refresh: {e}", exc_info=True)
            return False

        self.logger.debug("Scheduled token check completed")
        return True

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start the refresh loop on the running event loop."""
        if self.running:
            return
        self.logger.info(f"Starting token refresh scheduler (every {self.interval_seconds}s)")
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        """Cancel the refresh loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self.logger.info("Token refresh scheduler stopped")
