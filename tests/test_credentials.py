"""Unit tests for credential loading."""

import json

import pytest

from dtf_backend.auth.credentials import CredentialSet, load_credentials
from dtf_backend.exceptions import ConfigurationError


class TestCredentialSet:
    def test_complete(self):
        credentials = CredentialSet("key", "secret", "refresh")
        assert credentials.is_complete
        assert credentials.missing() == []
        credentials.require()

    def test_missing(self):
        credentials = CredentialSet(app_key="key")
        assert not credentials.is_complete
        with pytest.raises(ConfigurationError) as exc_info:
            credentials.require()
        assert exc_info.value.missing == ["app_secret", "refresh_token"]
        assert exc_info.value.to_dict()["kind"] == "configuration_error"


class TestLoadCredentials:
    def test_from_config(self):
        config = {
            "dropbox": {
                "app_key": "key",
                "app_secret": "secret",
                "refresh_token": "refresh",
                "token_storage": "config",
            }
        }
        assert load_credentials(config) == CredentialSet("key", "secret", "refresh")

    def test_environment_wins(self, monkeypatch):
        monkeypatch.setenv("DROPBOX_APP_KEY", "env_key")
        monkeypatch.setenv("DROPBOX_REFRESH_TOKEN", "env_refresh")
        config = {"dropbox": {"app_key": "key", "app_secret": "secret", "refresh_token": "refresh"}}

        credentials = load_credentials(config)

        assert credentials.app_key == "env_key"
        assert credentials.app_secret == "secret"
        assert credentials.refresh_token == "env_refresh"

    def test_refresh_token_from_keyring(self, isolate_keyring):
        isolate_keyring.get_password.return_value = json.dumps({"refresh_token": "keyring_refresh"})
        config = {"dropbox": {"app_key": "key", "app_secret": "secret"}}

        credentials = load_credentials(config)

        assert credentials.refresh_token == "keyring_refresh"
        isolate_keyring.get_password.assert_called_once_with("dtf-quote-backend", "default")

    def test_config_storage_skips_keyring(self, isolate_keyring):
        config = {"dropbox": {"app_key": "key", "app_secret": "secret", "token_storage": "config"}}

        credentials = load_credentials(config)

        assert credentials.refresh_token is None
        isolate_keyring.get_password.assert_not_called()

    def test_missing_everything_does_not_raise(self, caplog):
        credentials = load_credentials({})

        assert credentials.missing() == ["app_key", "app_secret", "refresh_token"]
        assert "not fully configured" in caplog.text
