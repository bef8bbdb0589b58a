"""
Relational persistence: declarative base, connection management, ORM models, CRUD.
"""

from workspace_chat.boundary.db.base import Base
from workspace_chat.boundary.db.connection import (
    database_writer,
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)

__all__ = [
    "Base",
    "database_writer",
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
]
