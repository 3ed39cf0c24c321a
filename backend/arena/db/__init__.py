"""Database package — shared engine, session factory, and Redis pool."""

from arena.db.base import Base, close_db, get_session_factory, init_db
from arena.db.redis import close_redis, get_redis, init_redis

__all__ = [
    "Base",
    "close_db",
    "close_redis",
    "get_redis",
    "get_session_factory",
    "init_db",
    "init_redis",
]
