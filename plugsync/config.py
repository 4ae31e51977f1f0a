"""Configuration management for plugsync."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigError
from .utils import (
    DEFAULT_API_URL,
    DEFAULT_INTERVAL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_WORKERS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_TIMEOUT,
    normalize_extension,
)

SETTINGS_FILE_NAME = "config.toml"


@dataclass
class SyncSettings:
    """Settings consumed by the sync engine and scheduler."""

    directories: list[str]
    """Root directories to watch"""

    file_types: list[str]
    """Accepted file extensions, without leading dot"""

    api_url: str = DEFAULT_API_URL
    """Base URL of the remote API"""

    interval: float = DEFAULT_INTERVAL
    """Seconds to wait after an ordinary cycle"""

    retry_interval: float = DEFAULT_RETRY_INTERVAL
    """Seconds to wait after a cycle-level failure"""

    max_workers: int = DEFAULT_MAX_WORKERS
    """Number of files synced in parallel within a cycle"""

    timeout: float = DEFAULT_TIMEOUT
    """Per-request timeout in seconds"""

    max_retries: int = DEFAULT_MAX_RETRIES
    """Retries for transient HTTP failures"""

    retry_delay: float = DEFAULT_RETRY_DELAY
    """Initial delay between HTTP retries in seconds"""

    max_depth: Optional[int] = None
    """Maximum directory depth scanned below each root (None = unbounded)"""

    extra: dict[str, Any] = field(default_factory=dict)
    """Unknown keys found in the settings file (kept, ignored)"""

    def __post_init__(self) -> None:
        self.file_types = [normalize_extension(ext) for ext in self.file_types]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncSettings":
        """Create settings from a dictionary (e.g. a parsed TOML document).

        Args:
            data: Mapping with at least ``directories`` and ``file_types``

        Returns:
            Validated SyncSettings

        Raises:
            ConfigError: If a required key is missing or a value is invalid
        """
        for key in ("directories", "file_types"):
            if key not in data:
                raise ConfigError(f"Missing required setting: {key}")
            value = data[key]
            if (
                not isinstance(value, list)
                or not value
                or not all(isinstance(v, str) and v.strip() for v in value)
            ):
                raise ConfigError(f"Setting '{key}' must be a non-empty list of strings")

        kwargs: dict[str, Any] = {
            "directories": list(data["directories"]),
            "file_types": list(data["file_types"]),
        }

        if "api_url" in data:
            if not isinstance(data["api_url"], str) or not data["api_url"].strip():
                raise ConfigError("Setting 'api_url' must be a non-empty string")
            kwargs["api_url"] = data["api_url"].rstrip("/")

        for key in ("interval", "retry_interval", "timeout", "retry_delay"):
            if key in data:
                kwargs[key] = _positive_number(key, data[key])

        for key in ("max_workers", "max_retries"):
            if key in data:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigError(f"Setting '{key}' must be an integer")
                if key == "max_workers" and value < 1:
                    raise ConfigError("Setting 'max_workers' must be at least 1")
                if key == "max_retries" and value < 0:
                    raise ConfigError("Setting 'max_retries' must not be negative")
                kwargs[key] = value

        if "max_depth" in data:
            value = data["max_depth"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(
                    "Setting 'max_depth' must be a non-negative integer"
                )
            kwargs["max_depth"] = value

        known = set(kwargs) | {"directories", "file_types"}
        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a dictionary for display."""
        return {
            "directories": list(self.directories),
            "file_types": list(self.file_types),
            "api_url": self.api_url,
            "interval": self.interval,
            "retry_interval": self.retry_interval,
            "max_workers": self.max_workers,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "max_depth": self.max_depth,
        }


def _positive_number(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"Setting '{key}' must be a positive number")
    return float(value)


class Config:
    """Environment-level configuration for plugsync."""

    @property
    def api_url(self) -> str:
        """Base URL of the remote API (``PLUGSYNC_API_URL`` or the default)."""
        return os.environ.get("PLUGSYNC_API_URL", DEFAULT_API_URL).rstrip("/")

    @property
    def settings_path(self) -> Path:
        """Settings file path (``PLUGSYNC_CONFIG`` or ./config.toml)."""
        env_path = os.environ.get("PLUGSYNC_CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        return Path.cwd() / SETTINGS_FILE_NAME

    def load_settings(self, path: Optional[Path] = None) -> SyncSettings:
        """Load sync settings, falling back to the environment's API URL."""
        return load_settings(path or self.settings_path, default_api_url=self.api_url)


def load_settings(path: Path, default_api_url: str = DEFAULT_API_URL) -> SyncSettings:
    """Load sync settings from a TOML file.

    Args:
        path: Path to the settings file
        default_api_url: API URL used when the file does not set ``api_url``

    Returns:
        Parsed SyncSettings

    Raises:
        ConfigError: If the file is missing, unreadable or invalid

    Examples:
        >>> settings = load_settings(Path("config.toml"))
        >>> settings.file_types
        ['py', 'md']
    """
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e

    data.setdefault("api_url", default_api_url)
    return SyncSettings.from_dict(data)


# Global config instance
config = Config()
