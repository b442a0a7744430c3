"""Configuration loading for PriceAlert.

Settings come from ``~/.config/pricealert/config.toml``; the Telegram
credentials and database path can be overridden with environment variables.
"""

import os
from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, Field, ValidationError

from pricealert.errors import ConfigError
from pricealert.feeds.forexfactory import DEFAULT_TIMEFRAME, DEFAULT_URL

CONFIG_DIR = Path.home() / ".config" / "pricealert"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = CONFIG_DIR / "pricealert.db"


class FeedSettings(BaseModel):
    url: str = Field(default=DEFAULT_URL, description="Instruments endpoint")
    timeframe: str = Field(default=DEFAULT_TIMEFRAME, description="Metrics bucket for the price")
    timeout: float = Field(default=10.0, gt=0, description="Request timeout in seconds")


class TelegramSettings(BaseModel):
    bot_token: str = Field(default="", description="Telegram bot token")
    chat_id: str = Field(default="", description="Destination chat ID")
    timeout: float = Field(default=10.0, gt=0, description="Request timeout in seconds")


class MonitorSettings(BaseModel):
    interval_seconds: int = Field(default=60, ge=1, description="Seconds between cycles")
    max_workers: int = Field(default=1, ge=1, description="Matched alerts processed in parallel")
    db_path: Path = Field(default=DEFAULT_DB_PATH, description="SQLite database file")


class Settings(BaseModel):
    """All PriceAlert settings."""

    feed: FeedSettings = Field(default_factory=FeedSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)


def get_config_path(path: Optional[Path] = None) -> Path:
    """Resolve the config file path (argument, then PRICEALERT_CONFIG, then default)."""
    if path is not None:
        return Path(path)
    env_path = os.environ.get("PRICEALERT_CONFIG")
    return Path(env_path) if env_path else DEFAULT_CONFIG_PATH


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from the config file and environment.

    Args:
        path: Optional config file path.

    Returns:
        Settings with environment overrides applied. A missing file
        yields the defaults.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    config_path = get_config_path(path)
    data: dict = {}

    if config_path.exists():
        try:
            data = toml.load(config_path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigError(f"Cannot read {config_path}: {e}") from e

    # Environment variables take precedence over the file
    telegram = data.setdefault("telegram", {})
    if os.environ.get("TELEGRAM_BOT_TOKEN"):
        telegram["bot_token"] = os.environ["TELEGRAM_BOT_TOKEN"]
    if os.environ.get("TELEGRAM_CHAT_ID"):
        telegram["chat_id"] = os.environ["TELEGRAM_CHAT_ID"]
    if os.environ.get("PRICEALERT_DB_PATH"):
        data.setdefault("monitor", {})["db_path"] = os.environ["PRICEALERT_DB_PATH"]

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}:\n{e}") from e


def create_template_config(path: Optional[Path] = None) -> Path:
    """Write a template configuration file.

    Args:
        path: Optional config file path.

    Returns:
        Path of the written file.
    """
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    template = {
        "feed": {
            "url": DEFAULT_URL,
            "timeframe": DEFAULT_TIMEFRAME,
            "timeout": 10.0,
        },
        "telegram": {
            "bot_token": "",  # Leave empty to use TELEGRAM_BOT_TOKEN env var
            "chat_id": "",  # Leave empty to use TELEGRAM_CHAT_ID env var
            "timeout": 10.0,
        },
        "monitor": {
            "interval_seconds": 60,
            "max_workers": 1,
            "db_path": str(DEFAULT_DB_PATH),
        },
    }

    with open(config_path, "w") as f:
        toml.dump(template, f)

    return config_path
