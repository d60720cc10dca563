"""Configuration management for saws.

Defaults come from ``config.yaml`` in the saws config directory, overridden by
environment variables (optionally loaded from a ``.env`` file in the same directory).
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from saws.utils.errors import ConfigurationError

DEFAULT_REGION = "us-east-1"


class Settings(BaseModel):
    """Application settings."""
    start_url: str = Field(default="", description="Default IAM Identity Center start URL")
    region: str = Field(default=DEFAULT_REGION, description="Default SSO region")
    client_name: str = Field(default="saws-cli", description="Client name registered with SSO OIDC")
    http_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    max_retries: int = Field(default=3, description="Attempts per portal API request")
    aws_config_file: str = Field(description="AWS shared config file holding SSO profiles")
    aws_credentials_file: str = Field(description="AWS shared credentials file")


class Config(BaseModel):
    """Full application configuration."""
    settings: Settings
    config_dir: Path

    def resolve_start_url(self, start_url: str | None = None) -> str:
        """Pick the explicit start URL, falling back to the configured default."""
        value = (start_url or self.settings.start_url).strip()
        if not value:
            raise ValueError(
                "No SSO start URL given. Pass --start-url or set SAWS_START_URL."
            )
        return value

    def resolve_region(self, region: str | None = None) -> str:
        return (region or self.settings.region).strip()


def home_dir() -> Path:
    """The user's home directory, or ConfigurationError if it cannot be determined."""
    try:
        return Path.home()
    except RuntimeError as e:
        raise ConfigurationError(f"cannot determine home directory: {e}") from e


def _config_dir() -> Path:
    override = os.environ.get("SAWS_CONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    return home_dir() / ".config" / "saws"


def _load_defaults(config_dir: Path) -> dict[str, Any]:
    """Load optional defaults from config.yaml."""
    path = config_dir / "config.yaml"
    if not path.exists():
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping of settings")
    return data


def _env(*keys: str, default: str = "") -> str:
    """Try multiple env var names, return the first one found."""
    for key in keys:
        val = os.environ.get(key, "")
        if val:
            return val.strip().strip('"')
    return default


def _load_settings(defaults: dict[str, Any] | None = None) -> Settings:
    """Build settings from config.yaml defaults and environment variables.

    Environment variables win over config.yaml.
    """
    defaults = defaults or {}
    aws_dir = home_dir() / ".aws"

    values = {
        "start_url": _env("SAWS_START_URL", default=str(defaults.get("start_url", ""))),
        "region": _env("SAWS_REGION", default=str(defaults.get("region", DEFAULT_REGION))),
        "client_name": _env("SAWS_CLIENT_NAME", default=str(defaults.get("client_name", "saws-cli"))),
        "http_timeout": _env("SAWS_HTTP_TIMEOUT", default=str(defaults.get("http_timeout", 30.0))),
        "max_retries": _env("SAWS_MAX_RETRIES", default=str(defaults.get("max_retries", 3))),
        "aws_config_file": _env("AWS_CONFIG_FILE", default=str(aws_dir / "config")),
        "aws_credentials_file": _env("AWS_SHARED_CREDENTIALS_FILE", default=str(aws_dir / "credentials")),
    }
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"invalid saws settings: {e}") from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Load and cache the full application configuration."""
    config_dir = _config_dir()

    # Load .env from the config directory if it exists
    env_path = config_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    settings = _load_settings(_load_defaults(config_dir))
    return Config(settings=settings, config_dir=config_dir)
