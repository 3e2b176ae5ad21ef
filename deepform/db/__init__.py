"""Database package: shared engine, session factory, and Redis pool."""

from deepform.db.base import Base, close_db, dialect_insert, get_session_factory, init_db
from deepform.db.redis import close_redis, get_redis, init_redis

__all__ = [
    "Base",
    "close_db",
    "close_redis",
    "dialect_insert",
    "get_redis",
    "get_session_factory",
    "init_db",
    "init_redis",
]
