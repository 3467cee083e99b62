"""Configuration management for pvdbridge.

Loads settings from a YAML configuration file with environment variable
overrides. Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/pvdbridge.yaml")

# Environment variable read by pvdd and its tooling to locate the daemon
DAEMON_PORT_ENV = "PVDID_PORT"


class HttpConfig(BaseModel):
    host: str = Field(default="::", description="Address the HTTP/WebSocket server binds to")
    port: int = Field(default=8080, ge=1, le=65535)
    static_file: Path | None = Field(
        default=None,
        description="HTML page served on GET; the packaged page is used when unset",
    )


class DaemonConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=10101, ge=1, le=65535)
    retry_interval: float = Field(default=1.0, gt=0, description="Seconds between connection ticks")
    read_size: int = Field(default=4096, gt=0)


class ClockConfig(BaseModel):
    interval: float = Field(default=5.0, gt=0, description="Seconds between hostDate events")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the bridge.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "PVDBRIDGE_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    http: HttpConfig = Field(default_factory=HttpConfig)
    daemon: DaemonConfig = Field(default_factory=DaemonConfig)
    clock: ClockConfig = Field(default_factory=ClockConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML values arrive as init kwargs and must not shadow env vars
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data: dict = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.debug("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    port = os.environ.get(DAEMON_PORT_ENV, "")
    if not port:
        return
    try:
        value = int(port)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", DAEMON_PORT_ENV, port)
        return
    daemon = yaml_data.get("daemon") or {}
    daemon["port"] = value
    yaml_data["daemon"] = daemon
