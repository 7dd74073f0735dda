"""Configuration management for the block-check relay."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field


class ConfigMissing(RuntimeError):
    """Raised when a setting the process cannot start without is absent."""


class RelaySettings(BaseModel):
    """Main configuration for the relay."""

    # Telegram settings
    telegram_bot_token: str = Field(default="", description="Bot API token")
    operator_chat_id: str = Field(default="", description="The only chat allowed to issue commands")
    telegram_api_url: str = Field(default="https://api.telegram.org", description="Bot API base URL")
    poll_timeout_seconds: int = Field(default=30, ge=1, description="Long-poll timeout for getUpdates")

    # Storage settings
    domains_file: str = Field(default="data/domains.txt", description="Newline-separated domain list")

    # Status API settings
    status_api_url: str = Field(default="https://check.skiddle.id/", description="Blocking status endpoint")
    status_api_timeout_seconds: float = Field(default=20.0, ge=15.0, le=30.0, description="Per-batch timeout")
    batch_size: int = Field(default=30, ge=1, le=30, description="Domains per status request")

    # Scheduling settings
    check_interval_seconds: int = Field(default=30 * 60, ge=1, description="Seconds between scheduled checks")

    log_level: str = Field(default="INFO", description="Logging level")


def _read_yaml(config_path: str) -> Dict[str, Any]:
    if not os.path.exists(config_path):
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("Config YAML must be a mapping")
    return data


def load_settings(config_path: Optional[str] = None) -> RelaySettings:
    """Load settings from an optional YAML file, then environment variables.

    Raises:
        ConfigMissing: the bot token or the operator chat id is not set.
    """
    if config_path is None:
        config_path = os.getenv("BLOCKWATCH_CONFIG", "config.yaml")

    config_data = _read_yaml(config_path)

    env_overrides = {
        "telegram_bot_token": os.getenv("TELEGRAM_BOT_TOKEN"),
        "operator_chat_id": os.getenv("TELEGRAM_CHAT_ID"),
        "domains_file": os.getenv("DOMAINS_FILE"),
        "status_api_url": os.getenv("STATUS_API_URL"),
        "check_interval_seconds": os.getenv("CHECK_INTERVAL_SECONDS"),
        "log_level": os.getenv("LOG_LEVEL"),
    }
    for key, value in env_overrides.items():
        if value is not None and value.strip():
            config_data[key] = value.strip()

    if "operator_chat_id" in config_data:
        config_data["operator_chat_id"] = str(config_data["operator_chat_id"]).strip()

    settings = RelaySettings(**config_data)

    missing = []
    if not settings.telegram_bot_token.strip():
        missing.append("TELEGRAM_BOT_TOKEN")
    if not settings.operator_chat_id.strip():
        missing.append("TELEGRAM_CHAT_ID")
    if missing:
        raise ConfigMissing(f"Missing required setting(s): {', '.join(missing)}")

    return settings


def domains_path(settings: RelaySettings) -> Path:
    return Path(settings.domains_file).expanduser()
