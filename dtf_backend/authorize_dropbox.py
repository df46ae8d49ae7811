#!/usr/bin/env python3
"""
Dropbox OAuth 2.0 Authorization Script

Runs the one-time authorization flow that yields the refresh token the backend
exchanges for access tokens.

Usage:
    python -m dtf_backend.authorize_dropbox [--config config/config.yaml]

The script will:
1. Read app credentials from config/config.yaml (or DROPBOX_APP_KEY / DROPBOX_APP_SECRET)
2. Print a URL for the user to authorize the app
3. Exchange the pasted authorization code for a refresh token
4. Store the refresh token in the system keyring, or in the config file
"""

import argparse
import logging
import os
import sys
from pathlib import Path

import yaml

from dtf_backend.auth.constants import ENV_APP_KEY, ENV_APP_SECRET
from dtf_backend.auth.oauth_manager import OAuthManager, TokenStorage
from dtf_backend.config_loader import DEFAULT_CONFIG_PATH, load_config_or_default


def save_refresh_token_to_config(config_path: Path, refresh_token: str) -> bool:
    """
    Write the refresh token into the dropbox section of config.yaml.

    Also switches ``token_storage`` to ``config`` so the server reads it from there.

    Returns:
        True if the file was written
    """
    try:
        config = load_config_or_default(str(config_path))
        dropbox_config = config.setdefault("dropbox", {})
        dropbox_config["refresh_token"] = refresh_token
        dropbox_config["token_storage"] = "config"

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)
    except (OSError, yaml.YAMLError) as e:
        print(f"\nError saving refresh token to config file: {e}")
        print("\nPlease manually add the following to your config.yaml:")
        print(f'\ndropbox:\n  refresh_token: "{refresh_token}"\n  token_storage: config')
        return False

    print(f"\n✓ Refresh token saved to: {config_path}")
    print("\nWARNING: Token is stored in plaintext in the config file.")
    print("For better security, install keyring: pip install keyring")
    return True


def main(argv=None) -> int:
    """Main authorization flow."""
    parser = argparse.ArgumentParser(description="Authorize the DTF quote backend with Dropbox OAuth 2.0")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG_PATH),
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--force-config-storage",
        action="store_true",
        help="Store the refresh token in the config file instead of the keyring",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger = logging.getLogger(__name__)

    config = load_config_or_default(str(args.config))
    dropbox_config = config.get("dropbox") or {}
    app_key = os.environ.get(ENV_APP_KEY) or dropbox_config.get("app_key")
    app_secret = os.environ.get(ENV_APP_SECRET) or dropbox_config.get("app_secret")

    if not app_key:
        print("\nError: app_key not found in configuration file or environment.")
        print(f'\nSet {ENV_APP_KEY} or add to {args.config}:\n\ndropbox:\n  app_key: "YOUR_APP_KEY_HERE"')
        return 1

    oauth_manager = OAuthManager(app_key, app_secret)

    try:
        authorize_url = oauth_manager.start_authorization_flow()

        print("\n" + "=" * 70)
        print("STEP 1: Authorize the application")
        print("=" * 70)
        print(f"\nPlease visit this URL in your browser:\n\n{authorize_url}\n")
        print("Click 'Allow', then copy the authorization code shown on the page.")

        auth_code = input("\nEnter the authorization code: ").strip()
        if not auth_code:
            print("\nError: No authorization code provided.")
            return 1

        tokens = oauth_manager.complete_authorization_flow(auth_code)

    except KeyboardInterrupt:
        print("\n\nAuthorization cancelled by user.")
        return 1
    except Exception as e:
        logger.error(f"Authorization failed: {e}", exc_info=args.verbose)
        print(f"\nError: Authorization failed: {e}")
        print("Please check your app_key and that the authorization code was copied correctly.")
        return 1

    print("\n" + "=" * 70)
    print("STEP 2: Save refresh token")
    print("=" * 70)

    token_storage = TokenStorage()
    if not args.force_config_storage and token_storage.keyring_available:
        if token_storage.save_tokens(tokens):
            print("✓ Refresh token saved to system keyring.")
        elif not save_refresh_token_to_config(args.config, tokens["refresh_token"]):
            return 1
    elif not save_refresh_token_to_config(args.config, tokens["refresh_token"]):
        return 1

    print(f"\n✓ Account ID: {tokens['account_id']}")
    print("\nStart the server with: python -m dtf_backend.run_server")
    return 0


if __name__ == "__main__":
    sys.exit(main())
