"""
数据库引擎与会话工厂（offload_records 所在库）
"""
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from core.config import settings
from infrastructure.models import Base

# 同步驱动名 -> 异步驱动名
_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def _build_async_url(database_url: str) -> str:
    """确保数据库URL使用异步驱动"""
    url = make_url(database_url)
    if "+" in url.drivername:
        return database_url
    if url.drivername not in _ASYNC_DRIVERS:
        raise ValueError(f"不支持的数据库驱动: {url.drivername}. 请使用 postgresql 或 sqlite")
    return url.set(drivername=_ASYNC_DRIVERS[url.drivername]).render_as_string(hide_password=False)


def _engine_kwargs(async_url: str) -> dict:
    if make_url(async_url).get_backend_name() == "sqlite":
        # aiosqlite 不支持连接池参数
        return {}
    return {"pool_pre_ping": True}


_async_url = _build_async_url(settings.database.url)

engine = create_async_engine(_async_url, echo=settings.DEBUG, **_engine_kwargs(_async_url))

# UoW 在事务外读取实体，提交后不过期属性
AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


def create_scoped_engine() -> AsyncEngine:
    """
    创建不带连接池的独立引擎（Celery 任务每次在新事件循环中运行，
    池化连接不能跨循环复用；调用方负责 dispose）
    """
    return create_async_engine(_async_url, echo=settings.DEBUG, poolclass=NullPool)


async def create_tables():
    """
    创建所有表（仅开发环境，生产使用 Alembic）
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine():
    """关闭连接池（应用退出时调用）"""
    await engine.dispose()
