"""Database engine, tables and session utilities."""

from .session import configure_database, get_engine, get_session_factory, init_db
from .tables import Base

__all__ = ["Base", "configure_database", "get_engine", "get_session_factory", "init_db"]
