"""
Database Abstraction Interface

Everything backend-specific about building engines lives behind this
interface: pooling, driver connect arguments, and the synchronous URL
Alembic migrates with. The store and services only ever see an AsyncEngine.
"""

from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import Pool


class DatabaseAdapter(ABC):
    """
    Base class for database adapters.

    To add a new database backend:
    1. Subclass DatabaseAdapter and implement the abstract methods
    2. Register it in get_database_adapter()
    """

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create the async engine for this backend.

        Args:
            database_url: Async connection string
            **kwargs: Engine options, merged over the adapter defaults
        """
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        return create_async_engine(
            database_url,
            poolclass=self.get_pool_class(database_url),
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    @abstractmethod
    def get_pool_class(self, database_url: str) -> type[Pool]:
        """Pool class suited to the given URL (e.g. shared connection for in-memory databases)."""

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """Driver connect arguments."""

    @abstractmethod
    def get_dialect_name(self) -> str:
        """SQLAlchemy dialect name, e.g. 'sqlite' or 'postgresql'."""

    @abstractmethod
    def to_sync_url(self, database_url: str) -> str:
        """
        Translate an async connection string to its synchronous driver.

        Alembic runs migrations on a synchronous connection.
        """
