"""
Configuration loading for CipherHunt.

Settings live in ``config.yaml`` at the project root. Deployment-specific
values can be overridden from the environment, which is first populated from
a ``.env`` file when one exists:

- CIPHERHUNT_CONTRACT_ADDRESS: deployed game contract address
- CIPHERHUNT_LOG_LEVEL: loguru level name
"""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from .core.errors import ConfigError


PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config.yaml"

CONTRACT_ADDRESS_ENV = "CIPHERHUNT_CONTRACT_ADDRESS"
LOG_LEVEL_ENV = "CIPHERHUNT_LOG_LEVEL"


class StatusConfig(BaseModel):
    success_dismiss_sec: float = Field(default=2.0, gt=0)
    pending_dismiss_sec: float = Field(default=3.0, gt=0)
    error_dismiss_sec: float = Field(default=3.0, gt=0)


class MapConfig(BaseModel):
    center_lat: float = Field(default=51.505, ge=-90, le=90)
    center_lng: float = Field(default=-0.09, ge=-180, le=180)
    jitter: float = Field(default=0.1, ge=0)
    zoom: int = Field(default=15, ge=0, le=22)


class PlayerConfig(BaseModel):
    active_window_sec: int = Field(default=86400, gt=0)
    online_window_sec: int = Field(default=300, gt=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = "logs/cipherhunt.log"

    @field_validator("level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return value.upper()


class GameConfig(BaseModel):
    """
    Validated game configuration.

    Examples:
        >>> config = GameConfig(contract_address="0x5FbDB2315678afecb367f032d93F642f64180aa3")
        >>> config.event_id_prefix
        'event-'
    """

    contract_address: str = Field(min_length=1)
    event_id_prefix: str = Field(default="event-", min_length=1)
    event_category: str = "Game Event"
    handler_timeout_sec: float = Field(default=120.0, gt=0)
    history_size: int = Field(default=200, gt=0)
    status: StatusConfig = Field(default_factory=StatusConfig)
    map: MapConfig = Field(default_factory=MapConfig)
    players: PlayerConfig = Field(default_factory=PlayerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse configuration file: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error reading configuration file: {e}") from e

    if data is None:
        raise ConfigError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration file must contain a mapping, got {type(data).__name__}"
        )
    return data


def load_config(
    path: Optional[Union[str, Path]] = None,
    env_file: Optional[Union[str, Path]] = None
) -> GameConfig:
    """
    Load config.yaml, apply environment overrides and validate.

    Args:
        path: Path to the YAML file. Defaults to config.yaml in the project root.
        env_file: .env file to load first. Defaults to .env next to the YAML
                  file; a missing file is ignored. Variables already set in
                  the environment win.

    Returns:
        GameConfig: Validated configuration

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    env_path = Path(env_file) if env_file is not None else config_path.parent / ".env"

    if env_path.exists():
        load_dotenv(env_path, override=False)
        logger.debug(f"Loaded environment from {env_path}")

    data = _read_yaml(config_path)

    contract_address = os.getenv(CONTRACT_ADDRESS_ENV)
    if contract_address:
        data["contract_address"] = contract_address

    log_level = os.getenv(LOG_LEVEL_ENV)
    if log_level:
        data.setdefault("logging", {})
        data["logging"] = {**(data["logging"] or {}), "level": log_level}

    try:
        config = GameConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    logger.debug(f"Configuration loaded from {config_path}")
    return config
