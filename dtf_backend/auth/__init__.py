"""
Authentication module for the DTF quote backend.
Provides the access token lifecycle manager, credential loading and the OAuth authorization flow.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dtf_backend.auth.credentials import CredentialSet, load_credentials
    from dtf_backend.auth.oauth_manager import OAuthManager, TokenStorage
    from dtf_backend.auth.token_manager import AccessToken, TokenLifecycleManager

__all__ = [
    "AccessToken",
    "CredentialSet",
    "OAuthManager",
    "TokenLifecycleManager",
    "TokenStorage",
    "load_credentials",
]


def __getattr__(name: str) -> object:
    if name in {"CredentialSet", "load_credentials"}:
        from dtf_backend.auth.credentials import CredentialSet, load_credentials

        return {"CredentialSet": CredentialSet, "load_credentials": load_credentials}[name]
    if name in {"OAuthManager", "TokenStorage"}:
        from dtf_backend.auth.oauth_manager import OAuthManager, TokenStorage

        return {"OAuthManager": OAuthManager, "TokenStorage": TokenStorage}[name]
    if name in {"AccessToken", "TokenLifecycleManager"}:
        from dtf_backend.auth.token_manager import AccessToken, TokenLifecycleManager

        return {"AccessToken": AccessToken, "TokenLifecycleManager": TokenLifecycleManager}[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
