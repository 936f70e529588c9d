"""
数据库模块

提供 SQLAlchemy 2.0 异步数据库支持
"""

from rangexp.database.engine import (
    engine,
    async_session_maker,
    session_scope,
    init_db,
    close_db,
)
from rangexp.database.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)

__all__ = [
    # Engine
    "engine",
    "async_session_maker",
    "session_scope",
    "init_db",
    "close_db",
    # Base
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
]
