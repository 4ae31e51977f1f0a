"""Credential resolution for the remote API."""

import logging
import os
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "PLUGSYNC_API_KEY"
KEYRING_SERVICE = "codegpt"
KEYRING_USERNAME = "api_key"


def get_api_key() -> Optional[str]:
    """Resolve the current bearer credential.

    The ``PLUGSYNC_API_KEY`` environment variable wins over the platform
    keyring entry.

    Returns:
        The API key, or None if no credential is available
    """
    value = os.environ.get(API_KEY_ENV_VAR, "").strip()
    if value:
        return value

    try:
        value = keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME)
    except KeyringError as e:
        logger.warning(f"Keyring lookup failed: {e}")
        return None

    if value and value.strip():
        return value.strip()
    return None


def require_api_key(explicit: Optional[str] = None) -> str:
    """Return an API key or fail with a descriptive error.

    Args:
        explicit: Key passed on the command line (takes precedence)

    Returns:
        The API key

    Raises:
        ConfigError: If no API key can be found
    """
    if explicit and explicit.strip():
        return explicit.strip()

    api_key = get_api_key()
    if not api_key:
        raise ConfigError(
            "API key not found. Set the PLUGSYNC_API_KEY environment variable "
            "or run 'plugsync init' to store it in the system keyring."
        )
    return api_key


def save_api_key(api_key: str) -> None:
    """Store the API key in the system keyring.

    Raises:
        ConfigError: If the keyring backend refuses the write
    """
    try:
        keyring.set_password(KEYRING_SERVICE, KEYRING_USERNAME, api_key)
    except KeyringError as e:
        raise ConfigError(f"Could not store API key in keyring: {e}") from e
    logger.debug(f"Stored API key in keyring service '{KEYRING_SERVICE}'")


def delete_api_key() -> bool:
    """Remove the API key from the system keyring.

    Returns:
        True if a key was removed, False if none was stored
    """
    try:
        keyring.delete_password(KEYRING_SERVICE, KEYRING_USERNAME)
    except PasswordDeleteError:
        return False
    except KeyringError as e:
        raise ConfigError(f"Could not remove API key from keyring: {e}") from e
    return True
