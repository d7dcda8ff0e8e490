"""Configuration management for cronwatch."""

from __future__ import annotations

import json
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class GeneralConfig(BaseModel):
    """General application configuration."""

    log_level: str = "INFO"
    log_format: str = "console"


class StorageConfig(BaseModel):
    """Configuration for the durable job store."""

    db_path: str = "data/cronwatch.db"


class SchedulerConfig(BaseModel):
    """Configuration for scheduling and execution ledgers."""

    history_limit: int = Field(default=100, ge=1)
    global_history_limit: int = Field(default=1000, ge=1)
    lookahead_minutes: int = Field(default=10080, ge=1)


class TargetConfig(BaseModel):
    """A single health-check target."""

    name: str
    url: str
    description: str = ""
    expected_status: int = 200


class CheckerConfig(BaseModel):
    """Configuration for the HTTP health-check sweep."""

    timeout_seconds: float = 15.0
    user_agent: str = "cronwatch-CronJob"
    targets: list[TargetConfig] = Field(default_factory=list)


class Config(BaseModel):
    """Main configuration container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    checker: CheckerConfig = Field(default_factory=CheckerConfig)


def apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides (``.env`` is read first).

    Recognised variables:
        CRONWATCH_DB_PATH: Overrides ``storage.db_path``.
        CRONWATCH_LOG_LEVEL: Overrides ``general.log_level``.
    """
    load_dotenv()

    db_path = os.getenv("CRONWATCH_DB_PATH")
    if db_path:
        config.storage.db_path = db_path

    log_level = os.getenv("CRONWATCH_LOG_LEVEL")
    if log_level:
        config.general.log_level = log_level.upper()

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from JSON file.

    Args:
        config_path: Path to config file. Defaults to configs/default.json.

    Returns:
        Loaded configuration object, with environment overrides applied.
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "configs" / "default.json"

    config_path = Path(config_path)

    if not config_path.exists():
        return apply_env_overrides(Config())

    with open(config_path) as f:
        data = json.load(f)

    return apply_env_overrides(Config(**data))
