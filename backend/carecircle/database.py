"""Engine, session factory and ORM base for the care circle store.

Requests get one session each through ``get_db``. Routers that touch the
cache commit on their own before invalidating; whatever is still pending
when the request ends is committed here.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from carecircle.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Objects stay readable after commit so responses can be built from them.
async_session = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base of the senior, membership, code and alert tables."""


async def get_db() -> AsyncSession:
    """Request-scoped session; a failing request leaves nothing behind."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
