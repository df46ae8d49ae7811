"""Constants for OAuth 2.0 authentication."""

# Buffer time before token expiry to trigger refresh (in seconds)
# Tokens are considered expired if they expire within this buffer
TOKEN_EXPIRY_BUFFER_SECONDS = 600  # 10 minutes = 600 seconds

# Keyring service name used by the authorization CLI and credential loader
KEYRING_SERVICE_NAME = "dtf-quote-backend"

# Environment variables that override the dropbox section of config.yaml
ENV_APP_KEY = "DROPBOX_APP_KEY"
ENV_APP_SECRET = "DROPBOX_APP_SECRET"
ENV_REFRESH_TOKEN = "DROPBOX_REFRESH_TOKEN"
