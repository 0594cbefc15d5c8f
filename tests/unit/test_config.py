"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from pathlib import Path

import pytest

from cryptofolio.config import (
    COINGECKO_API_URL,
    AppConfig,
    ControllerConfig,
    MarketDataConfig,
    StorageConfig,
    _interpolate_env,
    load_config,
)


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_dict(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "plain": "text"})
        assert result == {"key": "secret", "plain": "text"}

    def test_nested_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("A", "x")
        assert _interpolate_env(["${A}", "y"]) == ["x", "y"]

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.market_data.base_url == "https://api.example.com/api/v3"
        assert cfg.market_data.per_page == 25
        assert cfg.market_data.sparkline is False
        assert cfg.market_data.request_timeout_seconds == 7.0
        assert cfg.storage.key == "holdings"
        assert cfg.controller.fetch_timeout_seconds == 12.0
        assert cfg.controller.save_retries == 3
        assert cfg.controller.refresh_interval_minutes == 10

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("")
        cfg = load_config(cfg_file)
        assert cfg.market_data.base_url == COINGECKO_API_URL
        assert cfg.storage.key == "portfolio_holdings"
        assert cfg.controller == ControllerConfig()

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_CG_KEY", "cg-123")
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text('market_data:\n  api_key: "${TEST_CG_KEY}"\n')
        cfg = load_config(cfg_file)
        assert cfg.market_data.api_key == "cg-123"

    def test_unset_api_key_is_empty(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("UNSET_CG_KEY_XYZ", raising=False)
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text('market_data:\n  api_key: "${UNSET_CG_KEY_XYZ}"\n')
        assert load_config(cfg_file).market_data.api_key == ""


class TestValidation:
    @pytest.mark.parametrize(
        "yaml_content, message",
        [
            ("market_data:\n  per_page: 0\n", "per_page"),
            ("market_data:\n  base_url: ''\n", "base_url"),
            ("market_data:\n  request_timeout_seconds: 0\n", "request_timeout_seconds"),
            ("storage:\n  path: ''\n", "storage.path"),
            ("storage:\n  key: ''\n", "storage.key"),
            ("controller:\n  fetch_timeout_seconds: -1\n", "fetch_timeout_seconds"),
            ("controller:\n  save_retries: -1\n", "save_retries"),
            ("controller:\n  save_retry_delay_seconds: -0.5\n", "save_retry_delay_seconds"),
            ("controller:\n  refresh_interval_minutes: 0\n", "refresh_interval_minutes"),
        ],
    )
    def test_invalid_values_raise(
        self, tmp_path: Path, yaml_content: str, message: str
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(yaml_content)
        with pytest.raises(ValueError, match=message):
            load_config(cfg_file)


class TestFrozenConfigs:
    def test_market_data_immutable(self) -> None:
        c = MarketDataConfig()
        with pytest.raises(AttributeError):
            c.per_page = 99  # type: ignore[misc]

    def test_storage_immutable(self) -> None:
        s = StorageConfig()
        with pytest.raises(AttributeError):
            s.key = "other"  # type: ignore[misc]

    def test_controller_immutable(self) -> None:
        c = ControllerConfig()
        with pytest.raises(AttributeError):
            c.save_retries = 9  # type: ignore[misc]
