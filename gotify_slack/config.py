"""
Daemon configuration file.

Example:

    slack:
      token: "xoxb-..."
    enabled: true
    watch_config: true
    notifiers:
      - type: gotify
        config:
          url: "https://gotify.example.com"
          app_token: "A1b2C3"
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class PluginConfig(BaseModel):
    """The plugin's own configuration; an empty token means unconfigured."""
    slack_token: str = ""


class SlackConfig(BaseModel):
    token: str = ""

    @field_validator("token")
    @classmethod
    def strip_token(cls, value: str) -> str:
        return value.strip()


class NotifierConfig(BaseModel):
    """One notification destination."""
    type: str = Field(..., min_length=1)  # registry name: "gotify", "webhook", "console"
    config: dict[str, Any] = Field(default_factory=dict)


class Config(BaseModel):
    """Top-level daemon configuration."""
    slack: SlackConfig = Field(default_factory=SlackConfig)
    notifiers: list[NotifierConfig] = Field(..., min_length=1)
    enabled: bool = True
    watch_config: bool = True

    def plugin_config(self) -> PluginConfig:
        return PluginConfig(slack_token=self.slack.token)


def load_config(config_path: str | Path) -> Config:
    """
    Read and validate the configuration file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid YAML or fails validation
    """
    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Configuration is not valid YAML: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("Configuration validation error: top level must be a mapping")

    try:
        return Config.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Configuration validation error: {e}") from e
