"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter: SQLite-specific implementation (default)
- Session management: engine and session factory builders

To add a new database backend:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods
3. Update get_database_adapter() in sqlite_adapter.py to return the new adapter
"""

from shortlink.db.interface import DatabaseAdapter
from shortlink.db.session import build_engine, build_session_maker, create_tables, get_session

__all__ = [
    "DatabaseAdapter",
    "build_engine",
    "build_session_maker",
    "create_tables",
    "get_session",
]
