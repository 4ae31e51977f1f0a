"""plugsync - keep CodeGPT agent plugs in sync with local source directories."""

from .api import PlugClient
from .exceptions import (
    AuthenticationError,
    ConfigError,
    FileReadError,
    InvalidResponseError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    PlugSyncError,
    RateLimitError,
    RemoteError,
    ScanError,
)

__version__ = "0.1.0"

__all__ = [
    "PlugClient",
    "PlugSyncError",
    "ConfigError",
    "ScanError",
    "FileReadError",
    "RemoteError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "RateLimitError",
    "NetworkError",
    "InvalidResponseError",
]
