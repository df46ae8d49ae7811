"""
Process logging for the DTF quote backend.

One call to setup_logging() at startup installs a size-rotated file handler and
a console handler on the root logger. uvicorn is started with
``log_config=None`` so its access and error logs flow through the same
handlers.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List, Optional

LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB per file
LOG_BACKUP_COUNT = 5
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "dtf_backend.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("dropbox", "urllib3")

# Handlers installed by setup_logging; handlers owned by pytest or uvicorn are left alone
_added_handlers: set[logging.Handler] = set()


def _open_log_file(log_file: str) -> Optional[RotatingFileHandler]:
    """Create the rotating handler, or None if the file cannot be opened."""
    try:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        return RotatingFileHandler(log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
    except OSError as e:
        # Logging is not configured yet
        print(f"Warning: Could not create log file '{log_file}': {e}")
        print("Falling back to console-only logging.")
        return None


def _remove_added_handlers(root_logger: logging.Logger) -> None:
    for handler in list(_added_handlers):
        if handler in root_logger.handlers:
            root_logger.removeHandler(handler)
        handler.close()
    _added_handlers.clear()


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Configure root logging for the server process.

    Safe to call repeatedly: handlers from an earlier call are replaced, not
    duplicated.

    Args:
        verbose: DEBUG level if True, INFO otherwise
        log_file: Rotating log file path (default: logs/dtf_backend.log)
    """
    level = logging.DEBUG if verbose else logging.INFO
    log_file = log_file or os.path.join(DEFAULT_LOG_DIR, DEFAULT_LOG_FILE)
    root_logger = logging.getLogger()

    _remove_added_handlers(root_logger)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    file_handler = _open_log_file(log_file)
    if file_handler is not None:
        handlers.insert(0, file_handler)

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root_logger.addHandler(handler)
        _added_handlers.add(handler)

    root_logger.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging initialized - Level: {logging.getLevelName(level)}, File: {log_file if file_handler else 'none'}"
    )


def get_logger(name: str) -> logging.Logger:
    """Module logger; inherits the root configuration from setup_logging()."""
    return logging.getLogger(name)
