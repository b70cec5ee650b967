import logging

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from cms.cache import cache
from cms.config import settings
from cms.middleware import install_query_counter

logger = logging.getLogger(__name__)

# Module-level engine; tests swap the session factory through get_db overrides.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    Yield one session per request.

    The session is committed when the endpoint returns and rolled back on
    any exception; no transaction outlives the request.  Cache
    invalidations queued during the request run only after the commit.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.debug("Rolling back request transaction")
            cache.discard_pending(session)
            await session.rollback()
            raise
        await cache.flush_pending(session)
