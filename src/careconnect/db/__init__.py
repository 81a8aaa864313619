"""Database package."""
from .session import (
    Base,
    DatabaseManager,
    DbSession,
    SessionFactory,
    close_db,
    get_db,
    get_db_manager,
    get_session_factory,
    session_scope,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "DbSession",
    "SessionFactory",
    "close_db",
    "get_db",
    "get_db_manager",
    "get_session_factory",
    "session_scope",
]
