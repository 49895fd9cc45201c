"""
Database Connection Module
Handles the catalog/order database using the SQLAlchemy async engine.
"""

import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from cardapio.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

# SQLite (tests, demos) keeps SQLAlchemy's own pool choice
_pool_options = {} if DATABASE_URL.startswith("sqlite") else {
    "pool_size": 5,  # Connection pool size
    "max_overflow": 10,  # Extra connections when pool is full
}

engine = create_async_engine(
    DATABASE_URL,
    echo=settings.database_echo,
    **_pool_options,
)

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def init_db():
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Registers the mapped classes on Base.metadata
    from cardapio import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
