"""Tests for settings loading."""

from pathlib import Path

import pytest

from plugsync.config import Config, SyncSettings, load_settings
from plugsync.exceptions import ConfigError


def _write_toml(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


class TestSyncSettings:
    """Tests for SyncSettings validation."""

    def test_from_dict_minimal(self):
        """Test defaults applied to a minimal settings dict."""
        settings = SyncSettings.from_dict(
            {"directories": ["/src"], "file_types": ["py"]}
        )

        assert settings.directories == ["/src"]
        assert settings.file_types == ["py"]
        assert settings.interval == 60.0
        assert settings.retry_interval == 10.0
        assert settings.max_workers == 4
        assert settings.api_url == "https://api.codegpt.co/v1"

    def test_from_dict_full(self):
        """Test that every optional setting is read."""
        settings = SyncSettings.from_dict(
            {
                "directories": ["/a", "/b"],
                "file_types": [".py", "md"],
                "api_url": "https://api.test/v1/",
                "interval": 30,
                "retry_interval": 2.5,
                "max_workers": 8,
                "timeout": 5,
                "max_retries": 0,
                "retry_delay": 0.5,
            }
        )

        assert settings.file_types == ["py", "md"]
        assert settings.api_url == "https://api.test/v1"
        assert settings.interval == 30.0
        assert settings.retry_interval == 2.5
        assert settings.max_workers == 8
        assert settings.timeout == 5.0
        assert settings.max_retries == 0
        assert settings.retry_delay == 0.5

    def test_unknown_keys_are_kept_aside(self):
        """Test that extra keys do not break loading."""
        settings = SyncSettings.from_dict(
            {"directories": ["/a"], "file_types": ["py"], "colour": "blue"}
        )
        assert settings.extra == {"colour": "blue"}
        assert "colour" not in settings.to_dict()

    @pytest.mark.parametrize("key", ["directories", "file_types"])
    def test_missing_required_key(self, key):
        """Test that required keys are enforced."""
        data = {"directories": ["/a"], "file_types": ["py"]}
        del data[key]

        with pytest.raises(ConfigError, match=f"Missing required setting: {key}"):
            SyncSettings.from_dict(data)

    @pytest.mark.parametrize(
        "value", [[], "py", ["py", 3], [""], None]
    )
    def test_invalid_file_types(self, value):
        """Test that file_types must be a non-empty list of strings."""
        with pytest.raises(ConfigError, match="non-empty list of strings"):
            SyncSettings.from_dict({"directories": ["/a"], "file_types": value})

    @pytest.mark.parametrize(
        "key,value",
        [
            ("interval", 0),
            ("interval", -1),
            ("retry_interval", "soon"),
            ("timeout", True),
        ],
    )
    def test_invalid_numbers(self, key, value):
        """Test that intervals and timeouts must be positive numbers."""
        with pytest.raises(ConfigError, match="positive number"):
            SyncSettings.from_dict(
                {"directories": ["/a"], "file_types": ["py"], key: value}
            )

    def test_invalid_max_workers(self):
        """Test that at least one worker is required."""
        with pytest.raises(ConfigError, match="at least 1"):
            SyncSettings.from_dict(
                {"directories": ["/a"], "file_types": ["py"], "max_workers": 0}
            )

    def test_max_depth(self):
        """Test that max_depth is read and defaults to unbounded."""
        base = {"directories": ["/a"], "file_types": ["py"]}

        assert SyncSettings.from_dict(base).max_depth is None
        assert SyncSettings.from_dict({**base, "max_depth": 0}).max_depth == 0
        settings = SyncSettings.from_dict({**base, "max_depth": 3})
        assert settings.to_dict()["max_depth"] == 3
        assert "max_depth" not in settings.extra

    @pytest.mark.parametrize("value", [-1, 1.5, True, "2"])
    def test_invalid_max_depth(self, value):
        """Test that max_depth must be a non-negative integer."""
        with pytest.raises(ConfigError, match="non-negative integer"):
            SyncSettings.from_dict(
                {"directories": ["/a"], "file_types": ["py"], "max_depth": value}
            )

    def test_non_integer_max_retries(self):
        """Test that max_retries must be an integer."""
        with pytest.raises(ConfigError, match="must be an integer"):
            SyncSettings.from_dict(
                {"directories": ["/a"], "file_types": ["py"], "max_retries": 1.5}
            )

    def test_to_dict(self):
        """Test settings serialization."""
        settings = SyncSettings(directories=["/a"], file_types=[".py"])
        data = settings.to_dict()
        assert data["directories"] == ["/a"]
        assert data["file_types"] == ["py"]
        assert data["interval"] == 60.0


class TestLoadSettings:
    """Tests for reading TOML settings files."""

    def test_load_settings(self, tmp_path):
        """Test loading a valid settings file."""
        path = _write_toml(
            tmp_path / "config.toml",
            'directories = ["/src"]\nfile_types = ["py", "rs"]\ninterval = 15\n',
        )

        settings = load_settings(path)

        assert settings.directories == ["/src"]
        assert settings.file_types == ["py", "rs"]
        assert settings.interval == 15.0

    def test_missing_file(self, tmp_path):
        """Test that a missing file is a ConfigError."""
        with pytest.raises(ConfigError, match="Settings file not found"):
            load_settings(tmp_path / "config.toml")

    def test_invalid_toml(self, tmp_path):
        """Test that malformed TOML is a ConfigError."""
        path = _write_toml(tmp_path / "config.toml", "directories = [\n")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_settings(path)

    def test_default_api_url_used_when_unset(self, tmp_path):
        """Test the fallback API URL."""
        path = _write_toml(
            tmp_path / "config.toml", 'directories = ["/a"]\nfile_types = ["py"]\n'
        )

        settings = load_settings(path, default_api_url="https://env.test/v1")

        assert settings.api_url == "https://env.test/v1"

    def test_file_api_url_wins(self, tmp_path):
        """Test that the settings file overrides the fallback API URL."""
        path = _write_toml(
            tmp_path / "config.toml",
            'directories = ["/a"]\nfile_types = ["py"]\n'
            'api_url = "https://file.test/v1"\n',
        )

        settings = load_settings(path, default_api_url="https://env.test/v1")

        assert settings.api_url == "https://file.test/v1"


class TestConfig:
    """Tests for environment-level configuration."""

    def test_settings_path_default(self, tmp_path, monkeypatch):
        """Test that ./config.toml is the default settings file."""
        monkeypatch.delenv("PLUGSYNC_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        assert Config().settings_path == tmp_path / "config.toml"

    def test_settings_path_from_env(self, tmp_path, monkeypatch):
        """Test PLUGSYNC_CONFIG overrides the settings file."""
        monkeypatch.setenv("PLUGSYNC_CONFIG", str(tmp_path / "other.toml"))
        assert Config().settings_path == tmp_path / "other.toml"

    def test_load_settings_uses_env_api_url(self, tmp_path, monkeypatch):
        """Test that PLUGSYNC_API_URL applies when the file has no api_url."""
        monkeypatch.setenv("PLUGSYNC_API_URL", "https://env.test/v1")
        path = _write_toml(
            tmp_path / "config.toml", 'directories = ["/a"]\nfile_types = ["py"]\n'
        )

        settings = Config().load_settings(path)

        assert settings.api_url == "https://env.test/v1"
