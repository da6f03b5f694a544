import os
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from stationery.core.config import settings


def build_engine(database_uri: str) -> AsyncEngine:
    """创建异步引擎；仅在开发环境打印SQL（通过环境变量控制）"""
    return create_async_engine(
        database_uri,
        echo=os.getenv("SQL_DEBUG", "false").lower() == "true",
        future=True,
        connect_args={"timeout": 30},
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# 创建异步引擎
engine = build_engine(settings.async_database_uri)

# 创建异步会话
SessionLocal = build_session_factory(engine)
