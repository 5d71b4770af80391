"""
SQLite Database Adapter

This module implements the DatabaseAdapter interface for SQLite.
All SQLite-specific configuration and behavior is encapsulated here.

Key characteristics:
- File-based (single .db file), or in-memory for tests
- No server required
- Single writer at a time (file locking)
- Excellent for reads, limited concurrent writes
"""

from typing import Any

from sqlalchemy.pool import NullPool, Pool, StaticPool

from shortlink.db.interface import DatabaseAdapter

ASYNC_DRIVER_PREFIX = "sqlite+aiosqlite:"
SYNC_DRIVER_PREFIX = "sqlite:"


def is_memory_url(database_url: str) -> bool:
    return database_url.rstrip("/").endswith((ASYNC_DRIVER_PREFIX, ":memory:"))


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    File databases use NullPool (one connection per session), so background
    click writes never share a connection with a request. In-memory
    databases use StaticPool so every session sees the same database.
    """

    def get_pool_class(self, database_url: str) -> type[Pool]:
        if is_memory_url(database_url):
            return StaticPool
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False
        }

    def get_dialect_name(self) -> str:
        return "sqlite"

    def to_sync_url(self, database_url: str) -> str:
        """
        sqlite+aiosqlite:///./shortlink.db -> sqlite:///./shortlink.db

        A relative path written with two slashes (sqlite+aiosqlite://./x.db)
        is normalized to the three-slash form.
        """
        if not database_url.startswith(ASYNC_DRIVER_PREFIX):
            return database_url
        path = database_url[len(ASYNC_DRIVER_PREFIX):]
        if path.startswith("//") and not path.startswith("///") and len(path) > 2:
            path = "///" + path[2:]
        return SYNC_DRIVER_PREFIX + path


def get_database_adapter() -> DatabaseAdapter:
    """
    Factory function to get the database adapter.

    Returns SQLiteAdapter by default. To switch to PostgreSQL, create a
    PostgreSQLAdapter class and update this function.
    """
    return SQLiteAdapter()
