"""
Configuration management for Contextstore.

Loads YAML configuration from file with sensible defaults and validation.
Supports environment variable substitution using ${ENV_VAR} syntax.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from contextstore.exceptions import InvalidConfigurationError
from contextstore.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

CONFIG_PATH_ENV = "CONTEXTSTORE_CONFIG"

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_LOG_FORMATS = ["console", "json"]


def _expand_env_vars(value: Any) -> Any:
    """
    Recursively expand environment variables in configuration values.

    Supports ${ENV_VAR} syntax with optional default values: ${ENV_VAR:default}

    Examples:
        "${CONTEXTSTORE_ROOT}" -> value of CONTEXTSTORE_ROOT env var
        "${CONTEXTSTORE_ROOT:~/.contextstore}" -> env var value or the default
    """
    if isinstance(value, str):
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replace_env_var(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


@dataclass
class StorageConfig:
    """Storage configuration for the context store."""

    root: str = field(default_factory=lambda: os.path.expanduser("~/.contextstore"))


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    format: str = "console"  # "console" or "json"


@dataclass
class ContextStoreConfig:
    """Main Contextstore configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    # Name of the active context; it cannot be removed while active
    current_context: str = ""


def get_default_config_path() -> str:
    """Get the configuration file path, honouring CONTEXTSTORE_CONFIG."""
    return os.environ.get(CONFIG_PATH_ENV) or os.path.expanduser(
        "~/.contextstore/config.yaml"
    )


def get_default_config() -> ContextStoreConfig:
    """
    Get default configuration with sensible defaults.

    Returns:
        ContextStoreConfig: Default configuration object
    """
    return ContextStoreConfig()


def load_config(config_path: Optional[str] = None) -> ContextStoreConfig:
    """
    Load configuration from YAML file with validation.

    If config file is not found, returns default configuration.
    If config file is malformed or invalid, raises InvalidConfigurationError.

    Args:
        config_path: Path to configuration file. If None, uses default path.

    Returns:
        ContextStoreConfig: Loaded and validated configuration

    Raises:
        InvalidConfigurationError: If configuration is invalid or malformed
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = os.path.expanduser(str(config_path))

    if not os.path.exists(config_path):
        logger.info(f"Configuration file not found at {config_path}, using defaults")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)
        logger.debug(f"Loaded configuration from {config_path}")
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration file '{config_path}': {e}")
        raise InvalidConfigurationError(
            f"Failed to parse YAML configuration file '{config_path}': {e}"
        ) from e
    except OSError as e:
        logger.error(f"Failed to read configuration file '{config_path}': {e}")
        raise InvalidConfigurationError(
            f"Failed to read configuration file '{config_path}': {e}"
        ) from e

    if config_data is None:
        logger.info(f"Configuration file {config_path} is empty, using defaults")
        return get_default_config()

    if not isinstance(config_data, dict):
        raise InvalidConfigurationError(
            f"Configuration file '{config_path}' must contain a mapping at the top level"
        )

    config_data = _expand_env_vars(config_data)

    try:
        config = _build_config_from_dict(config_data)
        _validate_config(config)
    except InvalidConfigurationError as e:
        logger.error(f"Invalid configuration in '{config_path}': {e}")
        raise InvalidConfigurationError(
            f"Invalid configuration in '{config_path}': {e}"
        ) from e

    logger.info(f"Successfully loaded and validated configuration from {config_path}")
    return config


def _section(config_data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config_data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidConfigurationError(f"'{name}' section must be a mapping")
    return section


def _build_config_from_dict(config_data: Dict[str, Any]) -> ContextStoreConfig:
    """
    Build ContextStoreConfig from dictionary loaded from YAML.

    Merges user configuration with defaults.
    """
    default_config = get_default_config()

    storage_data = _section(config_data, 'storage')
    storage = StorageConfig(
        root=os.path.expanduser(
            str(storage_data.get('root', default_config.storage.root))
        ),
    )

    logging_data = _section(config_data, 'logging')
    logging = LoggingConfig(
        level=str(logging_data.get('level', default_config.logging.level)),
        file=os.path.expanduser(
            str(logging_data.get('file', default_config.logging.file))
        ),
        format=str(logging_data.get('format', default_config.logging.format)),
    )

    current_context = config_data.get('current_context') or ""

    return ContextStoreConfig(
        storage=storage,
        logging=logging,
        current_context=str(current_context),
    )


def _validate_config(config: ContextStoreConfig) -> None:
    """
    Validate configuration values.

    Raises:
        InvalidConfigurationError: If configuration is invalid
    """
    if not config.storage.root:
        logger.error("Configuration validation failed: storage root cannot be empty")
        raise InvalidConfigurationError("storage root cannot be empty")

    if config.logging.level.upper() not in VALID_LOG_LEVELS:
        raise InvalidConfigurationError(
            f"logging level must be one of {VALID_LOG_LEVELS}, "
            f"got '{config.logging.level}'"
        )

    if config.logging.format not in VALID_LOG_FORMATS:
        raise InvalidConfigurationError(
            f"logging format must be one of {VALID_LOG_FORMATS}, "
            f"got '{config.logging.format}'"
        )


def configure_logging(config: ContextStoreConfig) -> None:
    """Set up structured logging from the ``logging`` section of a configuration."""
    setup_logging(
        level=config.logging.level.upper(),
        log_file=Path(config.logging.file) if config.logging.file else None,
        json_format=config.logging.format == "json",
    )
