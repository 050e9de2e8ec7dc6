"""Configuration management for sqltag."""

import logging.config

from . import settings
from .factory import ConfiguredComponentFactory
from .schema import SqlTagConfig, validate_config
from .settings import ConfigManager, config

__all__ = [
    "ConfigManager",
    "config",
    "ConfiguredComponentFactory",
    "SqlTagConfig",
    "validate_config",
    "get_config",
    "reload_config",
    "get_log_config",
    "configure_logging",
]


def get_config() -> ConfigManager:
    """
    Get the global configuration manager instance.

    Returns:
        ConfigManager: Global configuration instance
    """
    return settings.config


def reload_config() -> ConfigManager:
    """
    Reload configuration from files and environment variables.

    Returns:
        The new global configuration instance
    """
    global config
    config = settings.config = ConfigManager()
    return config


def get_log_config(config_manager: ConfigManager | None = None) -> dict:
    """
    Get logging configuration suitable for Python's logging.dictConfig().

    Args:
        config_manager: Configuration manager (uses global if None)

    Returns:
        Logging configuration dictionary
    """
    log_config = (config_manager or settings.config).get_section("logging")
    level = log_config.get("level", "INFO")
    handler_settings = log_config.get("handlers") or {}

    handlers = {}
    root_handlers = []

    if (handler_settings.get("console") or {}).get("enabled", True):
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "default",
        }
        root_handlers.append("console")

    file_config = handler_settings.get("file") or {}
    if file_config.get("enabled", False):
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "default",
            "filename": file_config.get("path", "./logs/sqltag.log"),
            "maxBytes": _parse_size(file_config.get("max_size", "10MB")),
            "backupCount": file_config.get("backup_count", 5),
        }
        root_handlers.append("file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": log_config.get(
                    "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                )
            }
        },
        "handlers": handlers,
        "loggers": {
            "sqltag": {"level": level, "handlers": root_handlers, "propagate": False},
        },
    }


def configure_logging(config_manager: ConfigManager | None = None) -> None:
    """Apply the configured logging settings to the ``sqltag`` logger."""
    log_config = get_log_config(config_manager)

    file_handler = log_config["handlers"].get("file")
    if file_handler:
        from pathlib import Path
        Path(file_handler["filename"]).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(log_config)


def _parse_size(size_str: str | int) -> int:
    """
    Parse size string to bytes.

    Args:
        size_str: Size string like "10MB", "1GB"

    Returns:
        Size in bytes
    """
    if isinstance(size_str, int):
        return size_str

    size_str = size_str.strip().upper()
    multipliers = {
        "KB": 1024,
        "MB": 1024 * 1024,
        "GB": 1024 * 1024 * 1024,
        "B": 1,
    }

    for suffix, multiplier in multipliers.items():
        if size_str.endswith(suffix):
            return int(float(size_str[: -len(suffix)]) * multiplier)

    return int(size_str)
