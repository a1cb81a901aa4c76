"""Database layer."""
from .connection import get_connection, get_cursor, ensure_db_exists
from .activity_repository import ActivityRepository, InMemoryActivityRepository, SqliteActivityRepository

__all__ = ['get_connection', 'get_cursor', 'ensure_db_exists',
           'ActivityRepository', 'InMemoryActivityRepository', 'SqliteActivityRepository']
