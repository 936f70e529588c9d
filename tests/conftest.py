"""
测试配置和 fixtures

成就存储默认用内存实现替代；SQL 层的测试使用 db_session（SQLite 文件库）
"""

import os

os.environ.setdefault("ENV", "test")

from types import SimpleNamespace
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import rangexp.database.models  # noqa: F401
from rangexp.database.base import Base
from rangexp.services.glucose_query import GlucoseQueryService
from tests.fakes import FakeAchievementStore


@pytest.fixture
def store() -> FakeAchievementStore:
    """内存版成就存储"""
    return FakeAchievementStore()


@pytest.fixture
def glucose() -> AsyncMock:
    """血糖查询 mock，默认全部为 0"""
    mock = AsyncMock(spec=GlucoseQueryService)
    mock.get_readings_count.return_value = 0
    mock.get_today_readings_count.return_value = 0
    mock.get_unique_contexts_today.return_value = []
    return mock


@pytest.fixture
def user(store: FakeAchievementStore) -> SimpleNamespace:
    return store.add_user()


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """创建测试数据库引擎"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rangexp_test.db'}", echo=False)

    # 由 SQLAlchemy 自己发出 BEGIN，SAVEPOINT 才能正常工作
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """创建测试数据库会话"""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()
