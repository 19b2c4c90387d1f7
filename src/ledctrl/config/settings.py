"""Configuration management for ledctrl.

Loads settings from a YAML configuration file with environment variable
overrides. Nested sections are addressed with a double underscore, e.g.
``LEDCTRL_SERIAL__DEVICE=/dev/ttyUSB0``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/ledctrl.yaml")


class SerialConfig(BaseModel):
    device: str = Field(default="", description="Serial device path (e.g. /dev/ttyUSB0)")
    baudrate: int = Field(default=9600, gt=0)
    read_timeout: float = Field(default=0.1, gt=0)
    write_timeout: float = Field(default=1.0, gt=0)
    read_chunk_size: int = Field(default=16, ge=16, le=32)
    reader_error_delay: float = Field(default=0.1, ge=0)
    line_terminator: str = Field(default="\r\n")


class HttpConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=80, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the ledctrl daemon.

    Values passed explicitly (from the YAML file) are overridden by
    environment variables.
    """

    model_config = {
        "env_prefix": "LEDCTRL_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    serial: SerialConfig = Field(default_factory=SerialConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML data arrives as init kwargs; environment must win over it
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    return Settings(**yaml_data)
