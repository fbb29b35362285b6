"""
Centralized settings for the simulation engine.

Precedence (highest first):
  1. Environment variables (``DROPSIM_`` prefix, ``__`` for nested sections)
  2. Optional YAML overlay pointed to by ``DROPSIM_CONFIG_PATH``
  3. Defaults declared below

Usage:
    from dropsim_core.config import get_settings

    settings = get_settings()
    settings.simulation.event_probability
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, YamlConfigSettingsSource

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "DROPSIM_CONFIG_PATH"

ALLOWED_SPEEDS: Tuple[int, ...] = (1, 5, 10)


class InventoryPolicy(str, Enum):
    """How primary-path (budget allocated) orders relate to stock on hand."""

    UNCAPPED = "uncapped"
    CAPPED = "capped"


class MarketingDrawdown(str, Enum):
    """How the marketing budget is drawn down after each simulated day."""

    EXPENSE_SHARE = "expense_share"  # 10% of the day's final expenses
    SPEND = "spend"  # the per-product marketing spend already inside expenses


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = Field(default=False, alias="json")
    destination: str = "stdout"  # stdout | stderr | file
    filename: Optional[str] = None
    format: str = "%(asctime)s %(levelname)s %(name)s - %(message)s"

    model_config = {"populate_by_name": True}

    @field_validator("destination")
    @classmethod
    def _check_destination(cls, v: str) -> str:
        if v not in ("stdout", "stderr", "file"):
            raise ValueError("destination must be one of stdout, stderr, file")
        return v


class SimulationSettings(BaseModel):
    """Constants of the day-step model."""

    master_seed: Optional[int] = None
    base_tick_seconds: float = Field(default=2.0, gt=0)
    default_speed: int = 1
    event_probability: float = Field(default=0.10, ge=0.0, le=1.0)
    visitor_base: float = 100.0
    visitor_growth_per_day: float = 0.1
    shipping_per_order: float = 5.0
    return_loss_share: float = 0.5
    marketing_spend_rate: float = 0.05
    marketing_conversion_divisor: float = 1000.0
    marketing_drawdown_rate: float = 0.10
    starting_inventory: int = Field(default=15, ge=0)
    inventory_policy: InventoryPolicy = InventoryPolicy.UNCAPPED
    marketing_drawdown: MarketingDrawdown = MarketingDrawdown.EXPENSE_SHARE
    override_average_order_value: bool = True

    @field_validator("default_speed")
    @classmethod
    def _check_speed(cls, v: int) -> int:
        if v not in ALLOWED_SPEEDS:
            raise ValueError(f"default_speed must be one of {ALLOWED_SPEEDS}")
        return v


class ActionSettings(BaseModel):
    """Learner actions available from the dashboard."""

    restock_quantity: int = Field(default=20, gt=0)
    restock_unit_cost: float = Field(default=15.0, ge=0)
    marketing_increment: float = Field(default=100.0, gt=0)


class PersistenceSettings(BaseModel):
    debounce_seconds: float = Field(default=1.0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    snapshot_dir: Path = Path("data/sessions")


class CollaboratorSettings(BaseModel):
    base_url: Optional[str] = None
    api_token: Optional[SecretStr] = None
    timeout_seconds: float = Field(default=10.0, gt=0)


class Settings(BaseSettings):
    """Root settings aggregator."""

    model_config = SettingsConfigDict(
        env_prefix="DROPSIM_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"
    session_id: str = "default"
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    actions: ActionSettings = Field(default_factory=ActionSettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)
    collaborators: CollaboratorSettings = Field(default_factory=CollaboratorSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Env and .env win over the YAML overlay, which wins over defaults
        sources = [init_settings, env_settings, dotenv_settings]
        overlay = os.environ.get(CONFIG_PATH_ENV)
        if overlay:
            if Path(overlay).is_file():
                sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=overlay))
            else:
                logger.warning("Config overlay %s does not exist; ignoring", overlay)
        sources.append(file_secret_settings)
        return tuple(sources)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


__all__ = [
    "ALLOWED_SPEEDS",
    "ActionSettings",
    "CollaboratorSettings",
    "InventoryPolicy",
    "LoggingSettings",
    "MarketingDrawdown",
    "PersistenceSettings",
    "Settings",
    "SimulationSettings",
    "get_settings",
]
