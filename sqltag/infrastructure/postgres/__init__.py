"""PostgreSQL adapter for sqltag, built on asyncpg."""

from .connection import AsyncpgConnection, AsyncpgPool

__all__ = [
    "AsyncpgPool",
    "AsyncpgConnection",
]
