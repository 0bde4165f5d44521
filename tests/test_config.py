"""Tests for configuration manager."""

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest  # type: ignore[import-not-found]
import yaml  # type: ignore[import-untyped]

from time_ledger.core.config import ConfigManager
from time_ledger.core.models import UserRole


@pytest.fixture
def temp_config_path() -> Iterator[Path]:
    """Create a temporary config file path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "config.yml"


class TestConfigManager:
    """Test ConfigManager."""

    def test_initialization_creates_default_config(self, temp_config_path: Path) -> None:
        """Test that initialization creates default configuration."""
        assert not temp_config_path.exists()

        config = ConfigManager(temp_config_path)

        assert temp_config_path.exists()
        assert config.get("version") == "1.0"
        assert config.get("general.data_dir") == "~/.time-ledger/data"
        assert config.get("alerts.deadline_window_days") == 3
        assert config.get("reports.default_group_by") == "day"

    def test_merge_with_defaults(self, temp_config_path: Path) -> None:
        """Test that partial config is merged with defaults."""
        with open(temp_config_path, "w") as f:
            yaml.dump({"version": "1.0", "general": {"timezone": "Europe/Berlin"}}, f)

        config = ConfigManager(temp_config_path)

        assert config.get("general.timezone") == "Europe/Berlin"
        assert config.get("general.week_start") == "monday"
        assert config.get("export.include_charts") is True

    def test_get_nonexistent_key_returns_default(self, temp_config_path: Path) -> None:
        """Test getting nonexistent key returns default."""
        config = ConfigManager(temp_config_path)

        assert config.get("nonexistent.key") is None
        assert config.get("nonexistent.key", "default") == "default"
        assert config.get("logging.file", "fallback") == "fallback"

    def test_set_value_persists(self, temp_config_path: Path) -> None:
        """Test setting configuration values."""
        config = ConfigManager(temp_config_path)

        config.set("alerts.deadline_window_days", 7)

        assert config.get("alerts.deadline_window_days") == 7
        assert ConfigManager(temp_config_path).get("alerts.deadline_window_days") == 7

    def test_invalid_value_is_rolled_back(self, temp_config_path: Path) -> None:
        """Test that a rejected value leaves the previous one in place."""
        config = ConfigManager(temp_config_path)

        with pytest.raises(ValueError, match="Invalid configuration"):
            config.set("general.week_start", "friday")
        with pytest.raises(ValueError, match="Invalid configuration"):
            config.set("api.port", 70000)

        assert config.get("general.week_start") == "monday"
        assert config.get("api.port") == 8000
        assert ConfigManager(temp_config_path).get("general.week_start") == "monday"

    def test_reset_to_defaults(self, temp_config_path: Path) -> None:
        config = ConfigManager(temp_config_path)
        config.set("reports.sort", False)

        config.reset()

        assert config.get("reports.sort") is True

    def test_to_dict_is_a_copy(self, temp_config_path: Path) -> None:
        config = ConfigManager(temp_config_path)

        config_dict = config.to_dict()
        config_dict["general"]["timezone"] = "Asia/Tokyo"

        assert config.get("general.timezone") == "UTC"

    def test_get_all_keys(self, temp_config_path: Path) -> None:
        config = ConfigManager(temp_config_path)

        keys = config.get_all_keys()

        assert "version" in keys
        assert "general.timezone" in keys
        assert "api.authentication.secret_key" in keys
        assert "api" not in keys

    def test_corrupted_config_creates_backup(self, temp_config_path: Path) -> None:
        """Test that an invalid config is backed up and replaced with defaults."""
        with open(temp_config_path, "w") as f:
            yaml.dump({"version": "1.0", "alerts": {"threshold_percent": 0}}, f)

        with pytest.raises(ValueError, match="backed up"):
            ConfigManager(temp_config_path)

        assert temp_config_path.with_suffix(".yml.backup").exists()
        assert ConfigManager(temp_config_path).get("alerts.threshold_percent") == 100


class TestDerivedSettings:
    """Test values derived from the configuration."""

    def test_data_dir_is_expanded(self, temp_config_path: Path) -> None:
        config = ConfigManager(temp_config_path)

        assert config.data_dir == Path.home() / ".time-ledger" / "data"

    def test_local_user(self, temp_config_path: Path) -> None:
        config = ConfigManager(temp_config_path)
        config.set("user.id", "alice")
        config.set("user.role", "member")

        user = config.local_user()

        assert user.id == "alice"
        assert user.role is UserRole.MEMBER

    def test_secret_key_generated_once(self, temp_config_path: Path) -> None:
        config = ConfigManager(temp_config_path)

        key = config.ensure_api_secret_key()

        assert len(key) >= 32
        assert config.ensure_api_secret_key() == key
        assert ConfigManager(temp_config_path).get("api.authentication.secret_key") == key
