"""
Loading of the Dropbox credential set.
Resolves app key, app secret and refresh token from environment, config file or keyring.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dtf_backend.auth.constants import ENV_APP_KEY, ENV_APP_SECRET, ENV_REFRESH_TOKEN
from dtf_backend.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialSet:
    """App credentials and refresh token, fixed for the lifetime of the process."""

    app_key: Optional[str] = None
    app_secret: Optional[str] = None
    refresh_token: Optional[str] = None

    def missing(self) -> list:
        """Names of the credentials that are not set."""
        return [
            name
            for name, value in (
                ("app_key", self.app_key),
                ("app_secret", self.app_secret),
                ("refresh_token", self.refresh_token),
            )
            if not value
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing()

    def require(self) -> None:
        """
        Raises:
            ConfigurationError: If any credential is missing
        """
        missing = self.missing()
        if missing:
            raise ConfigurationError(missing)


def load_credentials(config: dict) -> CredentialSet:
    """
    Build the credential set from environment variables and configuration.

    Environment variables win over the ``dropbox`` section of the config. When
    ``token_storage`` is ``keyring`` (the default) and no refresh token was found
    elsewhere, the system keyring is consulted.

    Missing credentials are logged, not raised: the server still starts and
    every token request fails with ConfigurationError.

    Args:
        config: Configuration dictionary from config.yaml

    Returns:
        CredentialSet (possibly incomplete)
    """
    dropbox_config = config.get("dropbox") or {}
    token_storage_mode = dropbox_config.get("token_storage", "keyring")

    app_key = os.environ.get(ENV_APP_KEY) or dropbox_config.get("app_key")
    app_secret = os.environ.get(ENV_APP_SECRET) or dropbox_config.get("app_secret")
    refresh_token = os.environ.get(ENV_REFRESH_TOKEN) or dropbox_config.get("refresh_token")

    if refresh_token:
        logger.info("Using refresh token from environment or config file")
    elif token_storage_mode == "keyring":
        refresh_token = _load_refresh_token_from_keyring()
    else:
        logger.warning("token_storage set to 'config' but no refresh_token in config")

    credentials = CredentialSet(app_key=app_key, app_secret=app_secret, refresh_token=refresh_token)

    if not credentials.is_complete:
        logger.warning(
            f"Dropbox credentials not fully configured (missing: {', '.join(credentials.missing())}). "
            "All storage operations will fail until they are provided."
        )
        if not refresh_token:
            logger.warning("Please run: python -m dtf_backend.authorize_dropbox")

    return credentials


def _load_refresh_token_from_keyring() -> Optional[str]:
    from dtf_backend.auth.oauth_manager import TokenStorage

    token_storage = TokenStorage()
    if not token_storage.keyring_available:
        logger.warning("Keyring not available, install with: pip install keyring")
        return None

    tokens = token_storage.load_tokens()
    if tokens and "refresh_token" in tokens:
        logger.info("Using refresh token from system keyring")
        return tokens["refresh_token"]

    logger.debug("No tokens found in keyring")
    return None
