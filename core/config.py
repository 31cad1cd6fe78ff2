"""Configuration loader -- reads config.yaml + .env, validates with Pydantic.

Resolves ${ENV_VAR} references in YAML values from environment variables.
Fails fast with clear errors if the config is invalid.
"""

from __future__ import annotations

import logging
import os
import re
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from core.duration import parse_duration, parse_seconds
from core.models.market import AssetSymbol

logger = logging.getLogger(__name__)

# Default home directory for config.yaml and .env
DEFAULT_HOME = Path.home() / ".coinboard"


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} references in config values."""
    if isinstance(value, str):
        pattern = re.compile(r"\$\{(\w+)\}")
        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                logger.warning("Environment variable %s not set", var_name)
                return match.group(0)  # leave unresolved
            return env_value
        return pattern.sub(replacer, value)
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Config models (Pydantic)
# ---------------------------------------------------------------------------

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8321


class PortfolioConfig(BaseModel):
    initial_balances: dict[AssetSymbol, Decimal] = Field(default_factory=lambda: {
        AssetSymbol.BTC: Decimal("0.5"),
        AssetSymbol.ETH: Decimal("5"),
    })

    @field_validator("initial_balances")
    @classmethod
    def _non_negative(cls, value: dict[AssetSymbol, Decimal]) -> dict[AssetSymbol, Decimal]:
        for asset, quantity in value.items():
            if not quantity.is_finite() or quantity < 0:
                raise ValueError(f"initial balance for {asset.value} must be >= 0, got {quantity}")
        return value


class MarketDataConfig(BaseModel):
    provider: str = "coingecko"
    base_url: str = "https://api.coingecko.com/api/v3"
    api_key: str = ""
    vs_currency: str = "usd"
    timeout: str = "30s"
    refresh_interval: str = "5m"
    auto_refresh: bool = True

    @field_validator("timeout", "refresh_interval")
    @classmethod
    def _valid_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @property
    def timeout_seconds(self) -> float:
        return parse_seconds(self.timeout)

    @property
    def refresh_seconds(self) -> float:
        return parse_seconds(self.refresh_interval)


class ChartConfig(BaseModel):
    points_per_label: int = Field(default=24, ge=1)
    time_unit: str = "1h"
    # Raise on mismatched series lengths instead of truncating
    strict_alignment: bool = False

    @field_validator("time_unit")
    @classmethod
    def _valid_unit(cls, value: str) -> str:
        parse_duration(value)
        return value


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    assets: list[AssetSymbol] = Field(
        default_factory=lambda: [AssetSymbol.BTC, AssetSymbol.ETH],
    )
    portfolio: PortfolioConfig = Field(default_factory=PortfolioConfig)
    market_data: MarketDataConfig = Field(default_factory=MarketDataConfig)
    chart: ChartConfig = Field(default_factory=ChartConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("assets")
    @classmethod
    def _unique_assets(cls, value: list[AssetSymbol]) -> list[AssetSymbol]:
        if not value:
            raise ValueError("at least one asset must be configured")
        if len(set(value)) != len(value):
            raise ValueError("assets must not contain duplicates")
        return value


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Load configuration from YAML + .env files.

    1. Load .env into environment variables
    2. Load config.yaml and resolve ${ENV_VAR} references
    3. Validate against Pydantic models
    """
    home = Path(os.environ.get("COINBOARD_HOME", str(DEFAULT_HOME))).expanduser()

    if env_path is None:
        env_path = home / ".env"
    if config_path is None:
        config_path = home / "config.yaml"

    env_path = Path(env_path)
    config_path = Path(config_path)

    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from %s", env_path)
    else:
        logger.debug("No .env file at %s", env_path)

    raw_config: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", config_path)
    else:
        logger.warning("No config file at %s, using defaults", config_path)

    resolved = _resolve_env_vars(raw_config)

    # API key may come straight from the environment without a YAML reference
    api_key = os.environ.get("COINGECKO_API_KEY")
    if api_key:
        market = resolved.setdefault("market_data", {}) or {}
        market.setdefault("api_key", api_key)
        resolved["market_data"] = market

    return AppConfig(**resolved)
