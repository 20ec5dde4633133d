"""SQLAlchemy reference implementation of the spatial index collaborator."""

from geocell.storage.database import Base, create_tables, get_engine, get_session_factory
from geocell.storage.repository import SqlSpatialIndex, delete_item, get_item, put_item
from geocell.storage.schemas import StoredItem

__all__ = [
    "Base",
    "SqlSpatialIndex",
    "StoredItem",
    "create_tables",
    "delete_item",
    "get_engine",
    "get_item",
    "get_session_factory",
    "put_item",
]
