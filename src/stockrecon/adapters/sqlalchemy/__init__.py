"""SQLAlchemy adapter package for the image-association store."""

from __future__ import annotations

from .database import StartupError, configured_engine, session_factory, shutdown, startup
from .identifier_index import SqlAlchemyIdentifierIndex
from .mappings import create_all_tables, images_table, metadata

__all__ = [
    "SqlAlchemyIdentifierIndex",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "images_table",
    "metadata",
    "session_factory",
    "shutdown",
    "startup",
]
