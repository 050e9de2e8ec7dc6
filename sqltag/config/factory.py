"""
Configuration-based factory for creating sqltag components.

Pools and transaction defaults are built from the validated configuration,
so the same code runs against the settings of the active environment.
"""

import logging

from sqltag.application.transaction import TransactionOptions, retry_on
from sqltag.domain.exceptions import ConfigurationError
from . import settings
from .schema import DuckDBSettings, PostgresSettings, SqlTagConfig, TransactionConfig, validate_config


class ConfiguredComponentFactory:
    """
    Factory for creating pools and transaction options with configuration injection.

    This factory validates the complete configuration once, then hands each
    component the section it needs.
    """

    def __init__(self, config_manager=None):
        """
        Initialize the factory with configuration.

        Args:
            config_manager: Configuration manager instance (uses global if None)

        Raises:
            ConfigurationError: If the configuration does not match the schema
        """
        self.config_manager = config_manager or settings.config
        self._logger = logging.getLogger(__name__)
        self._validated_config: SqlTagConfig | None = None
        self._validate_configuration()

    def _validate_configuration(self) -> None:
        try:
            self._validated_config = validate_config(self.config_manager.get_all())
            self._logger.info("Configuration validation successful")
        except Exception as e:
            self._logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @property
    def validated_config(self) -> SqlTagConfig:
        """Get validated configuration object."""
        if self._validated_config is None:
            raise ConfigurationError("Configuration not validated")
        return self._validated_config

    def get_transaction_config(self) -> TransactionConfig:
        return self.validated_config.transaction

    def get_duckdb_config(self) -> DuckDBSettings:
        return self.validated_config.duckdb

    def get_postgres_config(self) -> PostgresSettings:
        return self.validated_config.postgres

    def transaction_options(self) -> TransactionOptions:
        """
        Create default transaction options.

        Returns:
            TransactionOptions built from the ``transaction`` section
        """
        tx_config = self.get_transaction_config()
        return TransactionOptions(
            isolation_level=tx_config.isolation_level,
            access_mode=tx_config.access_mode,
            max_retries=tx_config.max_retries,
            should_retry=retry_on(*tx_config.retryable_error_codes),
        )

    def create_duckdb_pool(self, database_path: str | None = None):
        """
        Create a DuckDB pool from the ``duckdb`` section.

        Args:
            database_path: Overrides the configured database path

        Returns:
            Unconnected DuckDBPool instance
        """
        from sqltag.infrastructure.duckdb import DuckDBConfig, DuckDBPool

        db_config = self.get_duckdb_config()
        path = database_path or db_config.database_path
        self._logger.info(f"Creating DuckDB pool with database: {path}")

        return DuckDBPool(
            database_path=path,
            config=DuckDBConfig(
                memory_limit=db_config.memory_limit,
                threads=db_config.threads,
                timezone=db_config.timezone,
                read_only=db_config.read_only,
            ),
        )

    def create_postgres_pool(self, dsn: str | None = None):
        """
        Create an asyncpg pool from the ``postgres`` section.

        Args:
            dsn: Overrides the configured connection string

        Returns:
            Unconnected AsyncpgPool instance

        Raises:
            ConfigurationError: If no connection string is configured
        """
        from sqltag.infrastructure.postgres import AsyncpgPool

        pg_config = self.get_postgres_config()
        dsn = dsn or pg_config.dsn
        if not dsn:
            raise ConfigurationError("postgres.dsn is not configured")

        connect_kwargs = {}
        if pg_config.command_timeout is not None:
            connect_kwargs["command_timeout"] = pg_config.command_timeout

        self._logger.info(
            f"Creating PostgreSQL pool (size {pg_config.min_size}-{pg_config.max_size})"
        )
        return AsyncpgPool(
            dsn,
            min_size=pg_config.min_size,
            max_size=pg_config.max_size,
            **connect_kwargs,
        )
