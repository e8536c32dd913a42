"""
Tests for configuration loading.

Tests cover:
1. Defaults
2. JSON config files (validated with pydantic)
3. Environment and .env overrides
"""

import json

import pytest
from pydantic import ValidationError

from nftauction.core.config import MarketConfig, load_config
from nftauction.core.registry import DEFAULT_FEE_TIERS
from nftauction.utils.units import usd


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any NFTAUCTION_* variables for the duration of a test."""
    for key in (
        "DEFAULT_FEE_RATE",
        "STALENESS_THRESHOLD",
        "NATIVE_DECIMALS",
        "LOG_LEVEL",
        "LOG_DIR",
        "LOG_TO_FILE",
    ):
        monkeypatch.setenv(f"NFTAUCTION_{key}", "placeholder")
        monkeypatch.delenv(f"NFTAUCTION_{key}")
    return monkeypatch


class TestDefaults:
    def test_defaults(self, clean_env, tmp_path):
        clean_env.chdir(tmp_path)
        config = load_config()

        assert config == MarketConfig()
        assert config.default_fee_rate == 250
        assert config.fee_tiers == list(DEFAULT_FEE_TIERS)
        assert config.staleness_threshold == 3600
        assert config.native_decimals == 18
        assert config.log_level == "INFO"


class TestConfigFile:
    """Tests for JSON config files."""

    def _write(self, tmp_path, data):
        path = tmp_path / "market.json"
        path.write_text(json.dumps(data))
        return str(path)

    def test_file_values(self, clean_env, tmp_path):
        path = self._write(tmp_path, {
            "default_fee_rate": 300,
            "fee_tiers": [
                {"usd_threshold": usd(500), "fee_rate": 400},
                {"usd_threshold": usd(5000), "fee_rate": 350},
            ],
            "staleness_threshold": 600,
            "log_level": "debug",
        })

        config = load_config(path, use_env=False)

        assert config.default_fee_rate == 300
        assert config.fee_tiers == [(usd(500), 400), (usd(5000), 350)]
        assert config.staleness_threshold == 600
        assert config.log_level == "DEBUG"
        assert config.native_decimals == 18

    def test_unordered_tiers_rejected(self, tmp_path):
        path = self._write(tmp_path, {
            "fee_tiers": [
                {"usd_threshold": usd(5000), "fee_rate": 350},
                {"usd_threshold": usd(500), "fee_rate": 400},
            ],
        })

        with pytest.raises(ValidationError):
            load_config(path, use_env=False)

    @pytest.mark.parametrize(
        "data",
        [
            {"default_fee_rate": 10_001},
            {"staleness_threshold": 0},
            {"log_level": "LOUD"},
            {"fee_tiers": [{"usd_threshold": 1, "fee_rate": -1}]},
        ],
    )
    def test_invalid_values_rejected(self, tmp_path, data):
        with pytest.raises(ValidationError):
            load_config(self._write(tmp_path, data), use_env=False)


class TestEnvironment:
    """Tests for NFTAUCTION_* overrides."""

    def test_env_overrides_file(self, clean_env, tmp_path):
        clean_env.chdir(tmp_path)
        path = tmp_path / "market.json"
        path.write_text(json.dumps({"default_fee_rate": 300}))
        clean_env.setenv("NFTAUCTION_DEFAULT_FEE_RATE", "125")
        clean_env.setenv("NFTAUCTION_LOG_TO_FILE", "true")

        config = load_config(str(path))

        assert config.default_fee_rate == 125
        assert config.log_to_file is True

    def test_env_ignored_when_disabled(self, clean_env):
        clean_env.setenv("NFTAUCTION_DEFAULT_FEE_RATE", "125")
        assert load_config(use_env=False).default_fee_rate == 250

    def test_invalid_env_rejected(self, clean_env, tmp_path):
        clean_env.chdir(tmp_path)
        clean_env.setenv("NFTAUCTION_STALENESS_THRESHOLD", "soon")

        with pytest.raises(ValidationError):
            load_config()

    def test_dotenv_file(self, clean_env, tmp_path):
        """A .env in the working directory is read before the environment."""
        clean_env.chdir(tmp_path)
        (tmp_path / ".env").write_text("NFTAUCTION_STALENESS_THRESHOLD=120\n")

        config = load_config()

        assert config.staleness_threshold == 120
