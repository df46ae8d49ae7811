"""
Custom exceptions for the DTF quote backend.

Exception Hierarchy:
    DTFBackendError (base)
    ├── ConfigurationError   - Dropbox credentials missing (logged at startup, raised on use)
    ├── TokenRefreshError    - OAuth refresh exchange failed
    ├── NotFoundError        - Quote or logo metadata does not exist
    ├── RemoteOperationError - Any other Dropbox API call failed
    └── RenderError          - Quote record cannot be rendered to HTML

Every error carries a human-readable message plus a machine-usable ``kind``
that the route layer copies into its JSON error body.
"""

from typing import Any, Dict, Optional


class DTFBackendError(Exception):
    """Base exception for all backend errors."""

    kind = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON error responses."""
        return {"error": self.message, "kind": self.kind, "details": self.details}


class ConfigurationError(DTFBackendError):
    """
    Dropbox app key, app secret or refresh token is not configured.

    Not fatal at process start: the server still boots, but every operation
    that needs a token fails with this error.
    """

    kind = "configuration_error"

    def __init__(self, missing: list):
        message = f"Missing Dropbox OAuth credentials: {', '.join(missing)}"
        super().__init__(message, {"missing": missing})
        self.missing = missing


class TokenRefreshError(DTFBackendError):
    """The refresh-token exchange against the authorization endpoint failed."""

    kind = "token_refresh_error"

    def __init__(self, message: str, upstream_detail: Optional[str] = None, status: Optional[int] = None):
        details: Dict[str, Any] = {}
        if upstream_detail:
            details["upstream"] = upstream_detail
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.upstream_detail = upstream_detail
        self.status = status


class NotFoundError(DTFBackendError):
    """Requested quote or logo metadata does not exist."""

    kind = "not_found"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, {"path": path} if path else None)
        self.path = path


class RemoteOperationError(DTFBackendError):
    """A non-auth Dropbox call failed. Wraps the upstream status and detail."""

    kind = "remote_operation_error"

    def __init__(
        self,
        operation: str,
        path: Optional[str] = None,
        status: Optional[int] = None,
        upstream_detail: Optional[str] = None,
    ):
        message = f"Dropbox {operation} failed"
        if path:
            message += f" for '{path}'"
        details: Dict[str, Any] = {"operation": operation}
        if status is not None:
            details["status"] = status
        if upstream_detail:
            details["upstream"] = upstream_detail
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.status = status
        self.upstream_detail = upstream_detail


class RenderError(DTFBackendError):
    """A quote record is malformed and cannot be rendered."""

    kind = "render_error"
