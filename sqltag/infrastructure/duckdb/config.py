"""DuckDB configuration management."""

import os
from dataclasses import dataclass


@dataclass
class DuckDBConfig:
    """Configuration settings for DuckDB connections.

    Supports environment-based overrides so the same code can run against
    an in-memory database in tests and a file database elsewhere.
    """

    # Memory settings
    memory_limit: str = "1GB"

    # Threading settings
    threads: int = 4

    # Timezone settings
    timezone: str = "UTC"

    # Connection settings
    read_only: bool = False

    @classmethod
    def from_environment(cls, **overrides) -> "DuckDBConfig":
        """Create configuration from environment variables with optional overrides.

        Environment variables:
        - DUCKDB_MEMORY_LIMIT: Memory limit (default: 1GB)
        - DUCKDB_THREADS: Number of threads (default: 4)
        - DUCKDB_TIMEZONE: Timezone (default: UTC)
        - DUCKDB_READ_ONLY: Read-only mode (default: false)

        Args:
            **overrides: Configuration overrides

        Returns:
            DuckDBConfig instance with environment-based settings
        """
        config = cls(
            memory_limit=os.getenv("DUCKDB_MEMORY_LIMIT", cls.memory_limit),
            threads=int(os.getenv("DUCKDB_THREADS", str(cls.threads))),
            timezone=os.getenv("DUCKDB_TIMEZONE", cls.timezone),
            read_only=os.getenv("DUCKDB_READ_ONLY", "false").lower() == "true",
        )

        for key, value in overrides.items():
            if hasattr(config, key):
                setattr(config, key, value)

        return config

    def get_connection_settings(self) -> list[str]:
        """Get list of SQL commands to configure a DuckDB connection.

        Returns:
            List of SQL SET commands for DuckDB configuration
        """
        return [
            f"SET memory_limit='{self.memory_limit}'",
            f"SET threads TO {self.threads}",
            f"SET TimeZone='{self.timezone}'",
        ]

    def __str__(self) -> str:
        return (
            f"DuckDBConfig(memory_limit={self.memory_limit}, "
            f"threads={self.threads}, timezone={self.timezone}, "
            f"read_only={self.read_only})"
        )
