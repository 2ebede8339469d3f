"""
Configuration management for Contextstore.

Handles loading and validation of configuration files.
"""

from contextstore.config.settings import (
    ContextStoreConfig,
    LoggingConfig,
    StorageConfig,
    configure_logging,
    get_default_config,
    get_default_config_path,
    load_config,
)

__all__ = [
    "ContextStoreConfig",
    "LoggingConfig",
    "StorageConfig",
    "configure_logging",
    "get_default_config",
    "get_default_config_path",
    "load_config",
]
