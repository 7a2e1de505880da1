"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class SourceSettings(BaseSettings):
    """Upstream rate sources: BCV official page and Binance P2P ad search."""

    model_config = SettingsConfigDict(env_prefix="SOURCES_")

    bcv_url: str = "https://www.bcv.org.ve/"
    p2p_url: str = "https://p2p.binance.com/bapi/c2c/v2/friendly/c2c/adv/search"
    user_agent: str = BROWSER_USER_AGENT
    # bcv.org.ve serves an incomplete certificate chain
    bcv_verify_tls: bool = False
    bcv_ca_bundle: str | None = None  # PEM trust anchor, takes precedence over bcv_verify_tls
    timeout: float = 10.0
    p2p_asset: str = "USDT"
    p2p_fiat: str = "VES"
    p2p_trade_type: Literal["BUY", "SELL"] = "BUY"


class StoreSettings(BaseSettings):
    """Rate persistence settings.

    When db_path is empty no database is configured and the read/write
    endpoint falls back to the append-only history file.
    """

    model_config = SettingsConfigDict(env_prefix="STORE_")

    db_path: str = "data/rates.db"
    history_file: str = "data/rates.json"
    read_order: Literal["created_at", "display_name"] = "created_at"


class CronSettings(BaseSettings):
    """Shared secret for scheduled ingestion triggers."""

    model_config = SettingsConfigDict(env_prefix="CRON_")

    secret: SecretStr = SecretStr("")


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 8080


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    sources: SourceSettings = SourceSettings()
    store: StoreSettings = StoreSettings()
    cron: CronSettings = CronSettings()
    server: ServerSettings = ServerSettings()
