"""
Marketplace configuration parameters.

Defines fee policy, oracle tolerance and logging options. Values come from,
in increasing precedence: defaults, a JSON config file, and NFTAUCTION_*
environment variables (a .env file is loaded first if present).
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

from nftauction.core.registry import DEFAULT_FEE_RATE, DEFAULT_FEE_TIERS
from nftauction.core.oracle import STALENESS_THRESHOLD
from nftauction.utils.units import NATIVE_DECIMALS, USD_DECIMALS
from nftauction.utils.validation import MAX_BASIS_POINTS

# Prefix of environment overrides
ENV_PREFIX = "NFTAUCTION_"


@dataclass
class MarketConfig:
    """Marketplace-wide configuration parameters"""

    # Fee policy
    default_fee_rate: int = DEFAULT_FEE_RATE  # Basis points, 250 = 2.5%
    fee_tiers: List[Tuple[int, int]] = field(default_factory=lambda: list(DEFAULT_FEE_TIERS))

    # Oracle
    staleness_threshold: int = STALENESS_THRESHOLD  # Seconds before a price is stale

    # Precision
    native_decimals: int = NATIVE_DECIMALS
    usd_decimals: int = USD_DECIMALS

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_to_file: bool = False


class FeeTierModel(BaseModel):
    """One fee tier as written in a config file."""

    usd_threshold: int = Field(ge=0)
    fee_rate: int = Field(ge=0, le=MAX_BASIS_POINTS)


class MarketConfigFile(BaseModel):
    """Schema of a JSON config file. Every key is optional."""

    default_fee_rate: Optional[int] = Field(default=None, ge=0, le=MAX_BASIS_POINTS)
    fee_tiers: Optional[List[FeeTierModel]] = None
    staleness_threshold: Optional[int] = Field(default=None, gt=0)
    native_decimals: Optional[int] = Field(default=None, ge=0, le=77)
    log_level: Optional[str] = None
    log_dir: Optional[str] = None
    log_to_file: Optional[bool] = None

    @field_validator("fee_tiers")
    @classmethod
    def tiers_ascending(cls, tiers):
        if tiers:
            thresholds = [t.usd_threshold for t in tiers]
            if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
                raise ValueError("fee tier thresholds must be strictly ascending")
        return tiers

    @field_validator("log_level")
    @classmethod
    def known_level(cls, level):
        if level is not None and level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {level}")
        return level.upper() if level else level


def _apply(config: MarketConfig, overrides: MarketConfigFile) -> None:
    if overrides.default_fee_rate is not None:
        config.default_fee_rate = overrides.default_fee_rate
    if overrides.fee_tiers is not None:
        config.fee_tiers = [(t.usd_threshold, t.fee_rate) for t in overrides.fee_tiers]
    if overrides.staleness_threshold is not None:
        config.staleness_threshold = overrides.staleness_threshold
    if overrides.native_decimals is not None:
        config.native_decimals = overrides.native_decimals
    if overrides.log_level is not None:
        config.log_level = overrides.log_level
    if overrides.log_dir is not None:
        config.log_dir = Path(overrides.log_dir)
    if overrides.log_to_file is not None:
        config.log_to_file = overrides.log_to_file


def _env_overrides() -> MarketConfigFile:
    values = {}
    for key in ("default_fee_rate", "staleness_threshold", "native_decimals", "log_level", "log_dir", "log_to_file"):
        raw = os.environ.get(ENV_PREFIX + key.upper())
        if raw is not None:
            values[key] = raw
    # pydantic coerces "300" -> 300 and "true" -> True
    return MarketConfigFile(**values)


def load_config(config_path: Optional[str] = None, use_env: bool = True) -> MarketConfig:
    """
    Load configuration from file and environment, or use defaults.

    Args:
        config_path: Optional path to a JSON config file
        use_env: Whether to apply NFTAUCTION_* environment overrides

    Returns:
        MarketConfig instance

    Raises:
        pydantic.ValidationError: file or environment values are invalid
    """
    config = MarketConfig()

    if config_path:
        data = json.loads(Path(config_path).read_text())
        _apply(config, MarketConfigFile(**data))

    if use_env:
        load_dotenv(find_dotenv(usecwd=True))
        _apply(config, _env_overrides())

    return config
