"""
Audit trail for mutating storage operations.

Each save or delete appends one JSON line to a dedicated ``audit_operations``
logger. Once setup_audit_logging() has run the entries go only to the audit
file; before that they propagate to the application log.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

AUDIT_LOGGER_NAME = "audit_operations"

logger = logging.getLogger(__name__)


def setup_audit_logging(log_file: str) -> logging.Logger:
    """
    Configure the audit logger to write JSON lines to ``log_file``.

    Args:
        log_file: Path to the audit log; parent directories are created

    Returns:
        The configured audit logger
    """
    log_dir = os.path.dirname(os.path.abspath(log_file))
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    for handler in audit_logger.handlers[:]:
        audit_logger.removeHandler(handler)
        handler.close()

    handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)
    audit_logger.propagate = False
    return audit_logger


def record_operation(operation: str, target: str, success: bool, error: Optional[str] = None) -> Dict[str, Any]:
    """
    Append an audit entry for a storage operation.

    Args:
        operation: Operation name (e.g. "save_quote", "delete_logo")
        target: Quote id or customer id the operation acted on
        success: Whether the operation completed
        error: Error message for failed operations

    Returns:
        The audit entry that was written
    """
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "operation": operation,
        "target": target,
        "success": success,
    }
    if error is not None:
        entry["error"] = error

    try:
        logging.getLogger(AUDIT_LOGGER_NAME).info(json.dumps(entry))
    except Exception as e:
        logger.error(f"Failed to write audit entry: {e}")

    return entry
