"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ParserSettings(BaseSettings):
    """Command grammar parameters."""

    model_config = SettingsConfigDict(env_prefix="PARSER_")

    quote_asset: str = "USDT"  # appended when only a base asset is typed
    known_quote_assets: list[str] = ["USDT", "BUSD", "USDC", "USD"]
    max_leverage: int = 125  # exchange hard ceiling
    market: Literal["futures", "spot"] = "futures"


class RiskSettings(BaseSettings):
    """Per-user risk preferences applied when building a preview.

    Loaded from RISK_ environment variables for defaults; callers build one
    per user from stored preferences.
    """

    model_config = SettingsConfigDict(env_prefix="RISK_")

    default_leverage: int = 3
    leverage_cap: int = 20
    max_slippage_bps: Decimal = Decimal("50")  # 0.5%
    fee_rate: Decimal = Decimal("0.0004")  # 0.04% taker
    size_presets: list[Decimal] = [Decimal("50"), Decimal("100"), Decimal("250")]
    tp_presets: list[Decimal] = [Decimal("2"), Decimal("4"), Decimal("8")]
    sl_presets: list[Decimal] = [Decimal("1"), Decimal("2")]


class ExchangeSettings(BaseSettings):
    """Exchange metadata and depth source settings."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    exchange_id: str = "binanceusdm"
    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    timeout_ms: int = 10000
    depth_limit: int = 50
    default_price_band: Decimal = Decimal("0.05")  # used when a symbol has no band filter


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    parser: ParserSettings = ParserSettings()
    risk: RiskSettings = RiskSettings()
    exchange: ExchangeSettings = ExchangeSettings()
