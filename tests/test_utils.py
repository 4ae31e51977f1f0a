"""Unit tests for utility functions."""

from datetime import datetime

import pytest

from plugsync.utils import format_duration, format_timestamp, normalize_extension


class TestFormatTimestamp:
    """Tests for format_timestamp."""

    def test_none(self):
        """Test that a missing timestamp renders as a dash."""
        assert format_timestamp(None) == "-"

    def test_local_time(self):
        """Test formatting in local time."""
        ts = datetime(2024, 3, 5, 14, 7, 9).timestamp()
        assert format_timestamp(ts) == "2024-03-05 14:07:09"


class TestFormatDuration:
    """Tests for format_duration."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [(0.25, "250 ms"), (1.0, "1.0 s"), (12.34, "12.3 s"), (125, "2m 05s")],
    )
    def test_format_duration(self, seconds, expected):
        """Test the three duration ranges."""
        assert format_duration(seconds) == expected


class TestNormalizeExtension:
    """Tests for normalize_extension."""

    @pytest.mark.parametrize(
        "raw,expected",
        [("py", "py"), (".py", "py"), (" .MD ", "MD"), ("tar.gz", "tar.gz")],
    )
    def test_normalize(self, raw, expected):
        """Test dot stripping while keeping case."""
        assert normalize_extension(raw) == expected
