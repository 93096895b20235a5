"""
Database connection management using asyncpg for scoped-permissions.
"""
import os
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Optional

import asyncpg
from asyncpg import Pool, Connection
import logging

logger = logging.getLogger(__name__)


# Connection bound by the innermost open transaction in the current task
_current_connection: ContextVar[Optional[Connection]] = ContextVar(
    "scoped_permissions_connection", default=None
)


class DatabaseManager:
    """Manages the connection pool and transaction-bound connections."""

    def __init__(self, database_url: Optional[str] = None, **pool_config):
        """Initialize DatabaseManager.

        Args:
            database_url: Database URL (defaults to DATABASE_URL env var)
            **pool_config: Additional pool configuration options
        """
        self.pool: Optional[Pool] = None
        self.dsn = database_url or os.getenv("DATABASE_URL", "")
        if "+asyncpg" in self.dsn:
            self.dsn = self.dsn.replace("+asyncpg", "")

        self.pool_config = {
            "min_size": 2,
            "max_size": 10,
            "max_inactive_connection_lifetime": 300,
            "command_timeout": 60,
            **pool_config
        }

    @classmethod
    def from_settings(cls, settings) -> "DatabaseManager":
        return cls(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )

    async def create_pool(self) -> Pool:
        """Create and return a connection pool."""
        if self.pool is None:
            logger.info(f"Creating database pool with size {self.pool_config['max_size']}")

            app_name = os.getenv("APP_NAME", "scoped-permissions")
            self.pool = await asyncpg.create_pool(
                self.dsn,
                server_settings={'application_name': app_name},
                **self.pool_config
            )
            logger.info("Database pool created successfully")
        return self.pool

    async def close_pool(self):
        """Close the connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")

    @asynccontextmanager
    async def acquire(self):
        """Acquire a connection, reusing the one bound by an open transaction."""
        bound = _current_connection.get()
        if bound is not None:
            yield bound
            return

        if not self.pool:
            await self.create_pool()

        async with self.pool.acquire() as connection:
            yield connection

    @asynccontextmanager
    async def transaction(self, read_only: bool = False):
        """Open a transaction and bind its connection for nested repository calls.

        Read-only transactions use REPEATABLE READ so that every query of one
        resolution sees the same snapshot.
        """
        if _current_connection.get() is not None:
            # Nested unit of work joins the outer transaction
            yield _current_connection.get()
            return

        async with self.acquire() as connection:
            isolation = "repeatable_read" if read_only else "read_committed"
            async with connection.transaction(isolation=isolation, readonly=read_only):
                token = _current_connection.set(connection)
                try:
                    yield connection
                finally:
                    _current_connection.reset(token)
