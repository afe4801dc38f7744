from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from . import config


def make_engine(url: str = None, **kwargs):
    # Hosted Postgres hands out postgresql:// URLs, the async driver needs postgresql+asyncpg://
    url = (url or config.DATABASE_URL).replace("postgresql://", "postgresql+asyncpg://")
    kwargs.setdefault("echo", config.DATABASE_ECHO)
    return create_async_engine(url, **kwargs)


def make_session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


engine = make_engine()

AsyncSessionLocal = make_session_factory(engine)

Base = declarative_base()


async def create_tables(bind=None):
    # models must be imported so their tables are registered on Base.metadata
    from . import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
