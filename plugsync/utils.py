"""Utility functions and defaults for plugsync."""

from datetime import datetime
from typing import Optional

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_API_URL: str = "https://api.codegpt.co/v1"

# Wait after an ordinary cycle
DEFAULT_INTERVAL: float = 60.0

# Wait after a cycle-level failure
DEFAULT_RETRY_INTERVAL: float = 10.0

# Retry configuration for transient HTTP errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds
DEFAULT_TIMEOUT: float = 30.0  # seconds

# Parallel per-file workers within one cycle
DEFAULT_MAX_WORKERS: int = 4


# =============================================================================
# Formatting helpers
# =============================================================================


def format_timestamp(timestamp: Optional[float]) -> str:
    """Format a Unix timestamp for display.

    Args:
        timestamp: Unix timestamp in seconds, or None

    Returns:
        Local time as "YYYY-MM-DD HH:MM:SS", or "-" when no timestamp is given
    """
    if timestamp is None:
        return "-"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a short human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        String like "850 ms", "12.3 s" or "2m 05s"
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f} s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"


def normalize_extension(extension: str) -> str:
    """Strip surrounding whitespace and a leading dot from an extension.

    Args:
        extension: Extension as written by the user (e.g. ".py" or "py")

    Returns:
        Extension without leading dot (case is preserved)
    """
    return extension.strip().lstrip(".")
