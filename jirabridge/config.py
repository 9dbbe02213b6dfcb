"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jirabridge.core.client import Credentials
from jirabridge.webhooks.models import EventKind


class JiraConfig(BaseModel):
    url: str = ""
    email: str = ""
    api_token: str = ""
    webhook_secret: str = ""  # empty: webhook signatures are not verified

    def credentials(self) -> Credentials:
        return Credentials(base_url=self.url, email=self.email, api_token=self.api_token)


class WebhookServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = 8420
    path: str = "/webhooks/jira"


class SubscriberConfig(BaseModel):
    """A trigger registration: which event kind it listens to and its filters."""
    id: str
    event: EventKind
    config: dict[str, Any] = Field(default_factory=dict)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JIRABRIDGE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    jira: JiraConfig = Field(default_factory=JiraConfig)
    webhooks: WebhookServerConfig = Field(default_factory=WebhookServerConfig)
    subscribers: list[SubscriberConfig] = Field(default_factory=list)
    log_level: str = "INFO"
    log_json: bool = False


def default_config_dir() -> Path:
    """Per-user config directory, overridable with $JIRABRIDGE_CONFIG_DIR."""
    override = os.environ.get("JIRABRIDGE_CONFIG_DIR")
    if override:
        return Path(override)
    if sys.platform == "win32":
        root = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
    elif sys.platform == "darwin":
        root = Path.home() / "Library" / "Application Support"
    else:
        root = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    return root / "jirabridge"


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    # Determine config file path
    if config_path is None:
        config_path = os.environ.get("JIRABRIDGE_CONFIG")
    if config_path is None:
        default = default_config_dir() / "config.yaml"
        if default.exists():
            config_path = default

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    # YAML values are passed as init kwargs; env vars fill whatever YAML leaves unset
    return Settings(**yaml_data)
