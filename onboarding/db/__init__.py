"""Database package — declarative Base, lifespan-scoped Database handle, session dependencies."""
from onboarding.db.base import Base, Database, create_database, get_db, get_session_factory

__all__ = ["Base", "Database", "create_database", "get_db", "get_session_factory"]
