"""
OAuth 2.0 authorization for Dropbox.
Handles the one-time PKCE authorization flow and keyring storage of the refresh token.
"""

import json
import logging
from typing import Dict, Optional

from dropbox import DropboxOAuth2FlowNoRedirect

from dtf_backend.auth.constants import KEYRING_SERVICE_NAME


class OAuthManager:
    """Runs the no-redirect authorization flow that yields a refresh token."""

    def __init__(self, app_key: str, app_secret: Optional[str] = None):
        """
        Initialize OAuth manager.

        Args:
            app_key: Dropbox app key
            app_secret: Dropbox app secret
        """
        self.app_key = app_key
        self.app_secret = app_secret
        self.logger = logging.getLogger(__name__)
        self._auth_flow: Optional[DropboxOAuth2FlowNoRedirect] = None

    def start_authorization_flow(self) -> str:
        """
        Start the OAuth 2.0 authorization flow.

        Returns:
            Authorization URL for the user to visit
        """
        try:
            self._auth_flow = DropboxOAuth2FlowNoRedirect(
                consumer_key=self.app_key,
                consumer_secret=self.app_secret,
                use_pkce=True,
                token_access_type="offline",  # Request refresh token
            )
            authorize_url = self._auth_flow.start()
            self.logger.info("Authorization flow started")
            return authorize_url

        except Exception as e:
            self.logger.error(f"Failed to start authorization flow: {e}")
            raise

    def complete_authorization_flow(self, auth_code: str) -> Dict[str, str]:
        """
        Complete the OAuth 2.0 authorization flow.

        Args:
            auth_code: Authorization code pasted by the user

        Returns:
            Dictionary containing refresh_token and account_id

        Raises:
            ValueError: If start_authorization_flow() was not called first
        """
        if self._auth_flow is None:
            raise ValueError("Authorization flow not started. Call start_authorization_flow() first.")

        try:
            oauth_result = self._auth_flow.finish(auth_code)
        except Exception as e:
            self.logger.error(f"Failed to complete authorization flow: {e}")
            raise
        finally:
            self._auth_flow = None

        self.logger.info(f"Authorization successful for account: {oauth_result.account_id}")

        # The access token from the flow is discarded; the server mints its own at startup
        return {
            "refresh_token": oauth_result.refresh_token,
            "account_id": oauth_result.account_id,
        }


class TokenStorage:
    """Stores the refresh token in the system keyring."""

    def __init__(self, service_name: str = KEYRING_SERVICE_NAME):
        """
        Initialize token storage.

        Args:
            service_name: Service name for keyring storage
        """
        self.service_name = service_name
        self.logger = logging.getLogger(__name__)

        # keyring is optional; fall back to config-file storage without it
        try:
            import keyring

            self.keyring = keyring
            self.keyring_available = True
        except ImportError:
            self.keyring = None
            self.keyring_available = False
            self.logger.warning(
                "Keyring not available. Refresh token must be stored in the config file. "
                "Install keyring package for secure storage: pip install keyring"
            )

    def save_tokens(self, tokens: Dict[str, str], username: str = "default") -> bool:
        """
        Save tokens to the keyring.

        Args:
            tokens: Dictionary containing at least refresh_token
            username: Username for keyring (default: "default")

        Returns:
            True if successful, False otherwise
        """
        if not self.keyring_available:
            self.logger.warning("Tokens cannot be saved securely without keyring.")
            return False

        try:
            self.keyring.set_password(self.service_name, username, json.dumps(tokens))
            self.logger.info(f"Tokens saved securely for user: {username}")
            return True
        except Exception as e:
            self.logger.error(f"Failed to save tokens: {e}")
            return False

    def load_tokens(self, username: str = "default") -> Optional[Dict[str, str]]:
        """
        Load tokens from the keyring.

        Args:
            username: Username for keyring (default: "default")

        Returns:
            Dictionary containing tokens, or None if not found
        """
        if not self.keyring_available:
            return None

        try:
            token_data = self.keyring.get_password(self.service_name, username)
            if not token_data:
                self.logger.debug(f"No tokens found for user: {username}")
                return None
            return json.loads(token_data)
        except Exception as e:
            self.logger.error(f"Failed to load tokens: {e}")
            return None

    def delete_tokens(self, username: str = "default") -> bool:
        """
        Delete tokens from the keyring.

        Returns:
            True if successful, False otherwise
        """
        if not self.keyring_available:
            self.logger.warning("Keyring not available. Cannot delete tokens.")
            return False

        try:
            self.keyring.delete_password(self.service_name, username)
            self.logger.info(f"Tokens deleted for user: {username}")
            return True
        except Exception as e:
            self.logger.error(f"Failed to delete tokens: {e}")
            return False
