"""Unit tests for client configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from equiduty.config.client_config import (
    ApiClientConfig,
    SelectionProcessRules,
    load_config,
)

ENV_KEYS = (
    "EQUIDUTY_API_URL",
    "EQUIDUTY_API_VERSION",
    "EQUIDUTY_API_TIMEOUT",
    "EQUIDUTY_ENVIRONMENT",
    "EQUIDUTY_NAME_MAX_LENGTH",
    "EQUIDUTY_DESCRIPTION_MAX_LENGTH",
    "EQUIDUTY_MIN_MEMBERS",
    "EQUIDUTY_MAX_WINDOW_DAYS",
    "EQUIDUTY_STRICT_TURN_ORDER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Start every test without EQUIDUTY_* variables or a stray .env file."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


class TestApiClientConfig:
    """Test REST connection settings."""

    def test_base_url_includes_version(self) -> None:
        """Trailing slashes are tolerated."""
        config = ApiClientConfig(api_url="https://api.equiduty.test/", api_version="v2")

        assert config.base_url == "https://api.equiduty.test/api/v2"

    def test_empty_url_rejected(self) -> None:
        with pytest.raises(ValueError):
            ApiClientConfig(api_url="")

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValueError):
            ApiClientConfig(api_url="https://api.equiduty.test", timeout_seconds=0)


class TestSelectionProcessRules:
    """Test wizard validation rules."""

    def test_defaults(self) -> None:
        """Defaults match the backend limits."""
        rules = SelectionProcessRules()

        assert rules.name_max_length == 100
        assert rules.description_max_length == 500
        assert rules.min_members == 2
        assert rules.strict_turn_order

    def test_min_members_below_two_rejected(self) -> None:
        """A rotation needs at least two members."""
        with pytest.raises(ValueError, match="min_members"):
            SelectionProcessRules(min_members=1)

    def test_name_limit_above_entity_limit_rejected(self) -> None:
        """Rules may tighten entity limits but not loosen them."""
        with pytest.raises(ValueError, match="name_max_length"):
            SelectionProcessRules(name_max_length=101)

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Rules are read from EQUIDUTY_* variables."""
        monkeypatch.setenv("EQUIDUTY_MIN_MEMBERS", "3")
        monkeypatch.setenv("EQUIDUTY_MAX_WINDOW_DAYS", "31")
        monkeypatch.setenv("EQUIDUTY_STRICT_TURN_ORDER", "false")

        rules = SelectionProcessRules.from_environment()

        assert rules.min_members == 3
        assert rules.max_window_days == 31
        assert not rules.strict_turn_order

    def test_invalid_numbers_fall_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unparseable values use the default."""
        monkeypatch.setenv("EQUIDUTY_MIN_MEMBERS", "several")

        assert SelectionProcessRules.from_environment().min_members == 2


class TestLoadConfig:
    """Test load_config()."""

    def test_missing_url(self) -> None:
        """The backend URL is required."""
        with pytest.raises(ValueError, match="EQUIDUTY_API_URL"):
            load_config()

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """All settings are read from the environment."""
        monkeypatch.setenv("EQUIDUTY_API_URL", "https://api.equiduty.test")
        monkeypatch.setenv("EQUIDUTY_API_TIMEOUT", "5")
        monkeypatch.setenv("EQUIDUTY_ENVIRONMENT", "production")

        config = load_config()

        assert config.api.api_url == "https://api.equiduty.test"
        assert config.api.api_version == "v1"
        assert config.api.timeout_seconds == 5.0
        assert config.environment == "production"
        assert config.rules == SelectionProcessRules()

    def test_env_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """A .env file supplies values the environment does not set."""
        env_file = tmp_path / "custom.env"
        env_file.write_text(
            "EQUIDUTY_API_URL=https://from-file.test\nEQUIDUTY_API_VERSION=v3\n"
        )
        monkeypatch.setenv("EQUIDUTY_API_VERSION", "v2")
        # Registered with monkeypatch so teardown removes what load_dotenv sets
        monkeypatch.setenv("EQUIDUTY_API_URL", "unset")
        monkeypatch.delenv("EQUIDUTY_API_URL")

        config = load_config(env_file)

        assert config.api.api_url == "https://from-file.test"
        assert config.api.api_version == "v2"
