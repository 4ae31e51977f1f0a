"""Exceptions raised by plugsync."""

from typing import Optional


class PlugSyncError(Exception):
    """Base exception for all plugsync errors."""


class ConfigError(PlugSyncError):
    """Settings or credential are missing or invalid."""


class ScanError(PlugSyncError):
    """A configured root could not be traversed."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class FileReadError(PlugSyncError):
    """A scanned file vanished or became unreadable before it was read."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class RemoteError(PlugSyncError):
    """The remote service rejected a request or answered with garbage."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(RemoteError):
    """Bearer credential was rejected (401)."""


class PermissionDeniedError(RemoteError):
    """Access forbidden (403)."""


class NotFoundError(RemoteError):
    """Remote resource not found (404)."""


class RateLimitError(RemoteError):
    """Too many requests (429)."""


class NetworkError(RemoteError):
    """Transport failure or timeout."""


class InvalidResponseError(RemoteError):
    """Response body is not JSON or lacks the expected identifier."""
