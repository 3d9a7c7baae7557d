"""
Application settings with Pydantic v2 validation.

Every group reads its own environment prefix (STORAGE_, PRICING_, API_);
top-level fields read unprefixed variables or .env.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """SQLite file location and connection pool."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "crm.db"
    pool_size: int = Field(default=5, ge=1)
    busy_timeout: int = Field(default=30000, ge=0)  # ms

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @model_validator(mode="after")
    def ensure_data_dir(self) -> "StorageSettings":
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return self


class PricingSettings(BaseSettings):
    """Checkout rules shared by every sale."""

    model_config = SettingsConfigDict(env_prefix="PRICING_")

    currency: str = Field(default="BRL", pattern=r"^[A-Z]{3}$")
    # Split payments: distinct methods allowed on one sale
    max_payment_methods: int = Field(default=2, ge=1)


class APISettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Agro CRM Quote-to-Cash Engine"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    storage: StorageSettings = Field(default_factory=StorageSettings)
    pricing: PricingSettings = Field(default_factory=PricingSettings)
    api: APISettings = Field(default_factory=APISettings)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget loaded settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
