"""Configuration validation schemas using Pydantic."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sqltag.application.transaction import AccessMode, IsolationLevel
from sqltag.domain.exceptions import RETRYABLE_ERROR_CODES


class ApplicationConfig(BaseModel):
    """Application-level configuration."""

    name: str = Field("sqltag", description="Application name")
    environment: str = Field("development", description="Environment name")
    debug: bool = Field(False, description="Debug mode")


class TransactionConfig(BaseModel):
    """Defaults for transactions started without explicit options."""

    isolation_level: IsolationLevel = Field(
        IsolationLevel.DEFAULT, description="Isolation level appended to BEGIN"
    )
    access_mode: AccessMode = Field(
        AccessMode.DEFAULT, description="Access mode appended to BEGIN"
    )
    max_retries: int = Field(2, ge=0, description="Retries for retryable errors")
    retryable_error_codes: list[str] = Field(
        default_factory=lambda: sorted(RETRYABLE_ERROR_CODES),
        description="Database error codes that allow a retry",
    )

    @field_validator("retryable_error_codes", mode="before")
    @classmethod
    def coerce_error_codes(cls, v):
        if v is None:
            return sorted(RETRYABLE_ERROR_CODES)
        if isinstance(v, (str, int)):
            v = [v]
        return [str(code) for code in v]


class DuckDBSettings(BaseModel):
    """DuckDB adapter configuration."""

    database_path: str = Field(":memory:", description="Path to DuckDB database file")
    read_only: bool = Field(False, description="Open database in read-only mode")
    memory_limit: str = Field("1GB", description="DuckDB memory limit")
    threads: int = Field(4, ge=1, description="Number of DuckDB threads")
    timezone: str = Field("UTC", description="Session time zone")

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v):
        if not v:
            raise ValueError("database_path cannot be empty")
        return v


class PostgresSettings(BaseModel):
    """PostgreSQL (asyncpg) adapter configuration."""

    dsn: str | None = Field(None, description="PostgreSQL connection string")
    min_size: int = Field(1, ge=0, description="Minimum pool size")
    max_size: int = Field(10, ge=1, le=1000, description="Maximum pool size")
    command_timeout: float | None = Field(None, gt=0, description="Statement timeout in seconds")


class LogHandlerConfig(BaseModel):
    """Log handler configuration."""

    enabled: bool = Field(True, description="Enable handler")
    path: str | None = Field(None, description="Log file path")
    max_size: str | None = Field(None, description="Maximum log file size")
    backup_count: int | None = Field(None, description="Number of backup files")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Log level")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log format"
    )
    handlers: dict[str, LogHandlerConfig] = Field(default_factory=dict)

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log level must be one of {valid_levels}")
        return v.upper()


class SqlTagConfig(BaseModel):
    """Complete sqltag configuration schema."""

    model_config = ConfigDict(extra="allow")

    application: ApplicationConfig = Field(default_factory=ApplicationConfig)
    transaction: TransactionConfig = Field(default_factory=TransactionConfig)
    duckdb: DuckDBSettings = Field(default_factory=DuckDBSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def validate_config(config_dict: dict) -> SqlTagConfig:
    """
    Validate configuration dictionary against schema.

    Args:
        config_dict: Configuration dictionary to validate

    Returns:
        Validated configuration object

    Raises:
        ValidationError: If configuration is invalid
    """
    return SqlTagConfig(**config_dict)
