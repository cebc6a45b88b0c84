"""
Data layer for the Internship Matcher service.

This package contains:
- models: Pydantic data models
- repositories: Read access to the CRUD-owned collections
- database: Database connection management
- entity_store: The collaborator interface the matching pipeline reads from
"""

from src.data.database import DatabaseManager, get_database_manager
from src.data.entity_store import EntityStore, MongoEntityStore

__all__ = [
    "DatabaseManager",
    "get_database_manager",
    "EntityStore",
    "MongoEntityStore",
]
