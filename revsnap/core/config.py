"""Configuration management for RevSnap."""

from __future__ import annotations

import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Only read from .env, never from settings.json
SECRET_FIELDS = ("database_url", "secret_key")


def get_config_dir() -> Path:
    """~/.revsnap, or $REVSNAP_HOME when set."""
    home = os.environ.get("REVSNAP_HOME")
    config_dir = Path(home) if home else Path.home() / ".revsnap"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_db_path() -> Path:
    """Default SQLite file, under <config dir>/data."""
    data_dir = get_config_dir() / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "revsnap.db"


def _default_elasticity_factors() -> dict[str, Decimal]:
    return {
        "Electronics": Decimal("1.2"),
        "Fashion": Decimal("1.5"),
        "Health": Decimal("0.8"),
        "Food & Beverage": Decimal("1.1"),
        "Fitness": Decimal("1.3"),
        "Accessories": Decimal("1.4"),
        "Wellness": Decimal("0.9"),
        "General": Decimal("1.0"),
    }


class PricingConfig(BaseModel):
    """Pricing recommendation configuration."""

    high_margin_threshold: Decimal = Decimal("0.50")
    low_margin_threshold: Decimal = Decimal("0.20")
    high_margin_discount: Decimal = Decimal("0.05")
    low_margin_increase: Decimal = Decimal("0.15")
    elasticity_base_increase: Decimal = Decimal("0.10")
    min_margin: Decimal = Decimal("0.25")
    default_units_sold: int = 100
    default_category: str = "General"
    elasticity_factors: dict[str, Decimal] = Field(default_factory=_default_elasticity_factors)
    top_opportunities_limit: int = 5
    risk_price_change_pct: Decimal = Decimal("-10")


def _default_source_weights() -> dict[str, Decimal]:
    return {
        "api": Decimal("3"),
        "historical": Decimal("2"),
        "scraping": Decimal("1.5"),
        "manual": Decimal("1"),
    }


def _default_source_multipliers() -> dict[str, Decimal]:
    return {
        "api": Decimal("1.2"),
        "historical": Decimal("0.9"),
        "scraping": Decimal("0.7"),
        "manual": Decimal("0.8"),
    }


class DataQualityConfig(BaseModel):
    """Data quality scoring configuration."""

    source_weights: dict[str, Decimal] = Field(default_factory=_default_source_weights)
    source_multipliers: dict[str, Decimal] = Field(default_factory=_default_source_multipliers)
    freshness_window_hours: Decimal = Decimal("48")
    min_freshness: Decimal = Decimal("0.5")
    excellent_threshold: int = 80
    good_threshold: int = 60
    fair_threshold: int = 40
    poor_threshold: int = 20


class AlertConfig(BaseModel):
    """Competitor price alert configuration."""

    min_price_change: Decimal = Decimal("0.01")
    high_severity_pct: Decimal = Decimal("10")
    medium_severity_pct: Decimal = Decimal("5")
    low_severity_threshold: Decimal = Decimal("2")
    stale_after_minutes: int = 60
    anomaly_deviation: Decimal = Decimal("0.5")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=str(get_config_dir() / ".env"),
        env_file_encoding="utf-8",
        env_prefix="REVSNAP_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Server
    database_url: str = ""  # Empty means SQLite in the data dir
    host: str = "0.0.0.0"
    port: int = 5000
    secret_key: str = "dev-secret-key-change-in-production"
    max_upload_mb: int = 10

    # Engines
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    data_quality: DataQualityConfig = Field(default_factory=DataQualityConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)

    log_level: str = "INFO"
    debug_mode: bool = False

    def get_database_url(self) -> str:
        """Get the effective SQLAlchemy database URL."""
        return self.database_url or f"sqlite:///{get_db_path()}"

    @classmethod
    def load(cls) -> "Settings":
        """Build settings from defaults and env, settings.json, then .env secrets."""
        settings = cls()

        overrides = _read_settings_file(get_config_dir() / "settings.json")
        if overrides:
            merged = settings.model_dump()
            for key, value in overrides.items():
                if key in SECRET_FIELDS:
                    logger.warning(f"Ignoring {key} in settings.json, set REVSNAP_{key.upper()} in .env")
                    continue
                if isinstance(value, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **value}
                else:
                    merged[key] = value
            try:
                settings = cls.model_validate(merged)
            except ValidationError as e:
                logger.warning(f"Ignoring invalid settings.json: {e}")

        env_path = get_config_dir() / ".env"
        if env_path.exists():
            env_vars = dotenv_values(env_path)
            for key in SECRET_FIELDS:
                value = env_vars.get(f"REVSNAP_{key.upper()}")
                if value:
                    setattr(settings, key, value)

        return settings


def _read_settings_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring settings file {path}: expected a JSON object")
        return {}
    return data


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings() -> Settings:
    """Discard the cached settings and load them again."""
    global _settings
    _settings = Settings.load()
    return _settings
