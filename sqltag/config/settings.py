"""Configuration settings management for sqltag."""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from sqltag.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# SQLTAG_TRANSACTION__MAX_RETRIES -> transaction.max_retries
NESTING_SEPARATOR = "__"


class ConfigManager:
    """Manages configuration with environment variable overrides.

    Configuration is read from ``base.yaml``, deep-merged with
    ``<environment>.yaml`` when it exists, and finally overridden by
    ``<PREFIX>_SECTION__KEY`` environment variables.
    """

    def __init__(self, config_dir: Path | None = None, env_prefix: str = "SQLTAG"):
        """Initialize configuration manager.

        Args:
            config_dir: Directory containing configuration files. If None, uses default.
            env_prefix: Prefix for environment variables.
        """
        self.config_dir = Path(config_dir) if config_dir else self._get_default_config_dir()
        self.env_prefix = env_prefix
        self._config: dict[str, Any] | None = None

        self.load_config()

    def _get_default_config_dir(self) -> Path:
        return Path(__file__).parent / "defaults"

    @property
    def config_path(self) -> Path:
        """Get the path to the configuration directory."""
        return self.config_dir

    def load_config(self) -> dict[str, Any]:
        """Load configuration from files and environment."""
        if self._config is not None:
            return self._config

        try:
            config_data = self._load_base_config()
            config_data = self._load_environment_config(config_data)
            config_data = self._apply_env_overrides(config_data)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            raise ConfigurationError(f"Configuration loading failed: {e}") from e

        self._config = config_data
        logger.info(f"Configuration loaded for environment: {self.get_environment()}")
        return self._config

    def _load_base_config(self) -> dict[str, Any]:
        base_file = self.config_dir / "base.yaml"
        try:
            with open(base_file, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.error(f"Base configuration file not found: {base_file}")
            raise ConfigurationError(f"Base configuration file not found: {base_file}") from None
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in base config file: {e}") from e

        logger.debug("Loaded base configuration")
        return config

    def _load_environment_config(self, base_config: dict[str, Any]) -> dict[str, Any]:
        env_var = f"{self.env_prefix}_ENVIRONMENT"
        environment = os.environ.get(
            env_var,
            base_config.get("application", {}).get("environment", "development"),
        )

        env_file = self.config_dir / f"{environment}.yaml"
        if env_file.exists():
            try:
                with open(env_file, "r", encoding="utf-8") as f:
                    env_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.warning(f"Invalid YAML in environment config file: {e}")
                env_config = {}
            else:
                logger.debug(f"Loaded {environment} configuration")
            config = self._deep_merge(base_config, env_config)
        else:
            logger.debug(f"No configuration file for environment: {environment}")
            config = base_config

        config.setdefault("application", {})["environment"] = environment
        return config

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value
        return base

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        prefix = f"{self.env_prefix}_"
        applied_overrides = 0

        for env_var, value in os.environ.items():
            if not env_var.startswith(prefix):
                continue
            config_key = env_var[len(prefix):].lower()
            if config_key == "environment":
                continue

            config_path = config_key.split(NESTING_SEPARATOR)
            try:
                self._set_nested_value(config, config_path, self._parse_env_value(value))
                applied_overrides += 1
                logger.debug(f"Applied environment override: {'.'.join(config_path)} = {value}")
            except ConfigurationError as e:
                logger.warning(f"Failed to apply environment override {env_var}: {e}")

        if applied_overrides > 0:
            logger.info(f"Applied {applied_overrides} environment variable overrides")

        return config

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ("", "null", "none"):
            return None
        if value.lower() in ("true", "false"):
            return value.lower() == "true"
        if "," in value:
            return [item.strip() for item in value.split(",") if item.strip()]
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            return value

    def _set_nested_value(self, config: dict[str, Any], path: list, value: Any) -> None:
        current = config
        for key in path[:-1]:
            if key not in current or current[key] is None:
                current[key] = {}
            elif not isinstance(current[key], dict):
                raise ConfigurationError(f"Cannot set nested value below {key!r}")
            current = current[key]
        current[path[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key."""
        value = self.load_config()
        for k in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default
        return value

    def get_section(self, section: str) -> dict[str, Any]:
        """Get a configuration section, or an empty dict if it is missing."""
        value = self.get(section, {})
        return value if isinstance(value, dict) else {}

    def has(self, key: str) -> bool:
        """Check if a configuration key exists and has a non-None value."""
        return self.get(key) is not None

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        self._set_nested_value(self.load_config(), key.split("."), value)

    def get_all(self) -> dict[str, Any]:
        """Get all configuration as a dictionary."""
        return self.load_config().copy()

    def get_environment(self) -> str:
        """Get the current environment."""
        return self.get("application.environment", "development")

    def is_debug(self) -> bool:
        """Check if debug mode is enabled."""
        return bool(self.get("application.debug", False))

    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.get_environment().lower() == "testing"


# Global configuration instance
config = ConfigManager()
