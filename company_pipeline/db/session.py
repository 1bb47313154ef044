"""
Database engine and session factory.

Sets up the async connection with SQLAlchemy; the URL picks the driver
(`sqlite+aiosqlite://` locally, `postgresql+asyncpg://` in production).
"""
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from company_pipeline.config import DATABASE_URL
from company_pipeline.db.schema import Base


def create_engine_and_sessionmaker(
    url: Optional[str] = None,
    echo: bool = False,
) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create the async engine and a session factory bound to it."""
    engine = create_async_engine(url or DATABASE_URL, echo=echo, future=True)
    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # keep loaded attributes usable after commit
    )
    return engine, session_maker


async def init_models(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
