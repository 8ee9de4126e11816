from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():
    # Register every mapped table on Base.metadata before create_all.
    from . import category, member, order, transaction, users  # noqa: F401
    from .inventory import item  # noqa: F401
    from .migrations import add_missing_user_columns, ensure_stock_constraints

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await add_missing_user_columns(engine)
    await ensure_stock_constraints(engine)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
