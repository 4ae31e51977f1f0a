"""Tests for credential resolution."""

from unittest.mock import patch

import pytest
from keyring.errors import KeyringError, PasswordDeleteError

from plugsync.auth import (
    KEYRING_SERVICE,
    KEYRING_USERNAME,
    delete_api_key,
    get_api_key,
    require_api_key,
    save_api_key,
)
from plugsync.exceptions import ConfigError


@pytest.fixture
def mock_keyring():
    """Replace the keyring module used by plugsync.auth."""
    with patch("plugsync.auth.keyring") as mock:
        mock.get_password.return_value = None
        yield mock


@pytest.fixture(autouse=True)
def no_env_key(monkeypatch):
    """Make sure no API key leaks in from the environment."""
    monkeypatch.delenv("PLUGSYNC_API_KEY", raising=False)


class TestGetApiKey:
    """Tests for get_api_key."""

    def test_env_var_wins(self, monkeypatch, mock_keyring):
        """Test that the environment variable is preferred."""
        monkeypatch.setenv("PLUGSYNC_API_KEY", " env_key ")
        mock_keyring.get_password.return_value = "keyring_key"

        assert get_api_key() == "env_key"
        mock_keyring.get_password.assert_not_called()

    def test_keyring_fallback(self, mock_keyring):
        """Test that the keyring entry is used without env var."""
        mock_keyring.get_password.return_value = "keyring_key"

        assert get_api_key() == "keyring_key"
        mock_keyring.get_password.assert_called_once_with(
            KEYRING_SERVICE, KEYRING_USERNAME
        )

    def test_nothing_found(self, mock_keyring):
        """Test that None is returned when no key exists."""
        assert get_api_key() is None

    def test_blank_keyring_value(self, mock_keyring):
        """Test that a blank stored key counts as missing."""
        mock_keyring.get_password.return_value = "   "
        assert get_api_key() is None

    def test_keyring_backend_error(self, mock_keyring):
        """Test that keyring failures are treated as not found."""
        mock_keyring.get_password.side_effect = KeyringError("no backend")
        assert get_api_key() is None


class TestRequireApiKey:
    """Tests for require_api_key."""

    def test_explicit_key(self, mock_keyring):
        """Test that an explicit key is returned as is."""
        assert require_api_key("cli_key") == "cli_key"
        mock_keyring.get_password.assert_not_called()

    def test_resolved_key(self, mock_keyring):
        """Test fallback to get_api_key."""
        mock_keyring.get_password.return_value = "keyring_key"
        assert require_api_key() == "keyring_key"

    def test_missing_key_raises(self, mock_keyring):
        """Test the descriptive error when no key is available."""
        with pytest.raises(ConfigError, match="plugsync init"):
            require_api_key()


class TestStoreApiKey:
    """Tests for saving and deleting the keyring entry."""

    def test_save(self, mock_keyring):
        """Test that the key is written to the keyring."""
        save_api_key("secret")
        mock_keyring.set_password.assert_called_once_with(
            KEYRING_SERVICE, KEYRING_USERNAME, "secret"
        )

    def test_save_failure(self, mock_keyring):
        """Test that keyring write failures become ConfigError."""
        mock_keyring.set_password.side_effect = KeyringError("locked")
        with pytest.raises(ConfigError, match="Could not store API key"):
            save_api_key("secret")

    def test_delete(self, mock_keyring):
        """Test deleting a stored key."""
        assert delete_api_key() is True

    def test_delete_missing(self, mock_keyring):
        """Test deleting when nothing is stored."""
        mock_keyring.delete_password.side_effect = PasswordDeleteError("missing")
        assert delete_api_key() is False
