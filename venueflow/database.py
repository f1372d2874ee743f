"""
Database entry points shared by models, the API layer and migrations.
"""

from venueflow.core.database_manager import Base, db_manager, get_db

engine = db_manager.engine
SessionLocal = db_manager.session_factory

__all__ = ["Base", "SessionLocal", "db_manager", "engine", "get_db"]
