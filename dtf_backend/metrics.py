"""
Metrics collection module for tracking Dropbox API usage.

This module provides a lightweight StorageMetrics collector for gathering:
- API call counts for each Dropbox operation
- Token refresh successes and failures
- Degraded listing statistics (skipped metadata files, failed directory scans)
"""

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Optional


class StorageMetrics:
    """
    Collects and aggregates metrics for Dropbox storage operations.

    Counters are updated from worker threads (SDK calls run off the event
    loop), so every mutation holds ``self._lock``.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()

        # API call counters
        self.api_calls: Dict[str, int] = {
            "token_refresh": 0,
            "upload": 0,
            "download": 0,
            "delete": 0,
            "list_folder": 0,
            "create_shared_link": 0,
            "list_shared_links": 0,
        }

        # Failure statistics
        self.token_refresh_failures = 0
        self.remote_errors = 0
        self.share_link_failures = 0
        self.listing_files_skipped = 0
        self.degraded_listings = 0

        self.start_time = datetime.now()

    def increment_api_call(self, operation: str, count: int = 1) -> None:
        """
        Increment the counter for a specific API operation.

        Args:
            operation: Operation name (e.g., "upload", "download")
            count: Number of calls to increment (default: 1)
        """
        with self._lock:
            if operation in self.api_calls:
                self.api_calls[operation] += count
            else:
                self.logger.warning(f"Unknown API operation: {operation}")

    def record_token_refresh_failure(self) -> None:
        with self._lock:
            self.token_refresh_failures += 1

    def record_remote_error(self) -> None:
        with self._lock:
            self.remote_errors += 1

    def record_share_link_failure(self) -> None:
        with self._lock:
            self.share_link_failures += 1

    def record_listing(self, skipped: int, degraded: bool) -> None:
        """
        Record the outcome of a customer quote listing.

        Args:
            skipped: Number of metadata files that could not be read
            degraded: Whether the listing was incomplete
        """
        with self._lock:
            self.listing_files_skipped += skipped
            if degraded:
                self.degraded_listings += 1

    def get_summary(self) -> Dict[str, Any]:
        """
        Get a summary of all collected metrics.

        Returns:
            Dictionary containing all metrics
        """
        with self._lock:
            return {
                "timestamp": datetime.now().isoformat(),
                "uptime_seconds": (datetime.now() - self.start_time).total_seconds(),
                "api_calls": self.api_calls.copy(),
                "total_api_calls": sum(self.api_calls.values()),
                "failures": {
                    "token_refresh": self.token_refresh_failures,
                    "remote_errors": self.remote_errors,
                    "share_link": self.share_link_failures,
                },
                "listings": {
                    "files_skipped": self.listing_files_skipped,
                    "degraded": self.degraded_listings,
                },
            }

    def log_summary(self, logger: Optional[logging.Logger] = None) -> None:
        """
        Log a human-readable summary of metrics.

        Args:
            logger: Optional logger to use (defaults to module logger)
        """
        log = logger or self.logger
        summary = self.get_summary()

        log.info("=" * 70)
        log.info("Dropbox Storage Metrics Summary")
        log.info("=" * 70)

        log.info("API Calls:")
        for operation, count in summary["api_calls"].items():
            if count > 0:
                log.info(f"  {operation}: {count}")
        log.info(f"  Total API calls: {summary['total_api_calls']}")
        log.info("")

        failures = summary["failures"]
        log.info("Failures:")
        log.info(f"  Token refresh failures: {failures['token_refresh']}")
        log.info(f"  Remote errors: {failures['remote_errors']}")
        log.info(f"  Shared link failures: {failures['share_link']}")
        log.info("")

        listings = summary["listings"]
        log.info("Listings:")
        log.info(f"  Metadata files skipped: {listings['files_skipped']}")
        log.info(f"  Degraded listings: {listings['degraded']}")
        log.info("=" * 70)
