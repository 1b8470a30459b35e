"""Configuration management for Resale Arbitrage Catalog."""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_dir = Path.home() / ".resale-arbitrage-catalog"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_dir = get_config_dir() / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_db_path() -> Path:
    """Get the SQLite database file path."""
    return get_data_dir() / "catalog.db"


class DatabaseConfig(BaseModel):
    """Catalog store configuration."""

    url: str = ""  # Empty means the SQLite file under the data dir
    echo: bool = False

    def resolve_url(self) -> str:
        """Get the SQLAlchemy URL to connect to."""
        if self.url:
            return self.url
        return f"sqlite:///{get_db_path()}"


class ReconcileConfig(BaseModel):
    """Reconciliation batching configuration."""

    delete_batch_size: int = Field(default=100, ge=1, le=1000)
    insert_batch_size: int = Field(default=500, ge=1)
    # Pacing for scraping producers, the engine itself never sleeps
    scrape_page_delay_seconds: float = Field(default=1.0, ge=0)


class ProfitConfig(BaseModel):
    """Profit calculation configuration."""

    quantity_correction: bool = False
    default_fee_rate: Decimal = Decimal("15")
    default_fulfillment_fee: Decimal = Decimal("0")


class ProxyConfig(BaseModel):
    """Outbound proxy settings handed to scraping collaborators."""

    enabled: bool = False
    host: str = ""
    port: int | None = None
    username: str = ""
    password: str = ""

    @field_validator("host")
    @classmethod
    def strip_scheme(cls, value: str) -> str:
        for prefix in ("http://", "https://"):
            if value.startswith(prefix):
                return value[len(prefix):]
        return value

    @field_validator("port")
    @classmethod
    def check_port(cls, value: int | None) -> int | None:
        if value is not None and not 1 <= value <= 65535:
            raise ValueError(f"Proxy port out of range: {value}")
        return value

    @model_validator(mode="after")
    def disable_when_incomplete(self) -> "ProxyConfig":
        if self.enabled and (not self.host or self.port is None):
            logger.warning("Proxy enabled but host/port missing, disabling proxy")
            self.enabled = False
        return self

    @property
    def url(self) -> str:
        """Proxy URL including credentials when both are set."""
        if not self.enabled:
            return ""
        auth = f"{self.username}:{self.password}@" if self.username and self.password else ""
        return f"http://{auth}{self.host}:{self.port}"


class WebConfig(BaseModel):
    """Web API configuration."""

    host: str = "127.0.0.1"
    port: int = 5050


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=str(get_config_dir() / ".env"),
        env_file_encoding="utf-8",
        env_prefix="RAC_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    profit: ProfitConfig = Field(default_factory=ProfitConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    log_level: str = "INFO"

    def save(self) -> None:
        """Save settings to the config file."""
        config_path = get_config_dir() / "settings.json"
        # JSON mode writes Decimals as strings, so money values survive exactly
        with open(config_path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
        logger.info(f"Settings saved to {config_path}")

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from the config file or create defaults."""
        config_path = get_config_dir() / "settings.json"
        env_path = get_config_dir() / ".env"

        # Start with defaults
        settings = cls()

        # Load from JSON if exists
        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
                settings = cls.model_validate(data)
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable settings file {config_path}: {e}")

        # Proxy credentials live in .env only
        if env_path.exists():
            from dotenv import dotenv_values

            env_vars = dotenv_values(env_path)
            proxy_values = settings.proxy.model_dump()
            if env_vars.get("RAC_PROXY_HOST"):
                proxy_values["host"] = env_vars["RAC_PROXY_HOST"]
            if env_vars.get("RAC_PROXY_PORT"):
                proxy_values["port"] = int(env_vars["RAC_PROXY_PORT"])
            if env_vars.get("RAC_PROXY_USERNAME"):
                proxy_values["username"] = env_vars["RAC_PROXY_USERNAME"]
            if env_vars.get("RAC_PROXY_PASSWORD"):
                proxy_values["password"] = env_vars["RAC_PROXY_PASSWORD"]
            if env_vars.get("RAC_USE_PROXY"):
                proxy_values["enabled"] = env_vars["RAC_USE_PROXY"].lower() in (
                    "true",
                    "1",
                    "yes",
                )
            settings.proxy = ProxyConfig.model_validate(proxy_values)

        return settings
