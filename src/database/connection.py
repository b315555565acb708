"""
Database connection management using SQLAlchemy with async support.
"""

from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from shared.utils.config import settings
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)

# Base class for all models
Base = declarative_base()

# Global engine and session maker
_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for a database URL.

    Pool sizing only applies to server databases; SQLite gets a busy
    timeout and foreign key enforcement instead.

    Args:
        database_url: SQLAlchemy URL with an async driver
        echo: Echo SQL statements

    Returns:
        AsyncEngine instance
    """
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": 30},
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        database_url,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=settings.DATABASE_POOL_PRE_PING,
        pool_recycle=settings.DATABASE_POOL_RECYCLE,
        echo=echo,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create a session maker bound to an engine.

    Returns:
        Session maker instance
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """
    Get or create the async database engine.

    Returns:
        AsyncEngine instance
    """
    global _engine

    if _engine is None:
        db_url = settings.async_database_url

        # Log without credentials
        logger.info(f"Creating database engine: {db_url.split('@')[-1]}")

        _engine = create_engine_for_url(db_url, echo=settings.DATABASE_ECHO)

    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """
    Get or create the session maker.

    Returns:
        Session maker instance
    """
    global _session_maker

    if _session_maker is None:
        _session_maker = create_session_maker(get_engine())

    return _session_maker


async def create_tables(engine: Optional[AsyncEngine] = None):
    """
    Create all database tables.
    Used for testing or initial setup.
    In production, use Alembic migrations instead.
    """
    # Register models on Base.metadata
    import src.database.models  # noqa: F401

    engine = engine or get_engine()

    logger.info("Creating database tables...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created successfully")


async def close_connections():
    """
    Close all database connections.
    Call this on application shutdown.
    """
    global _engine, _session_maker

    if _engine:
        logger.info("Closing database connections...")
        await _engine.dispose()
        _engine = None
        _session_maker = None

    logger.info("Database connections closed")


async def check_connection(engine: Optional[AsyncEngine] = None) -> bool:
    """
    Check if database connection is working.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = engine or get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.debug("Database connection check: SUCCESS")
        return True
    except Exception as e:
        logger.error(f"Database connection check: FAILED - {e}")
        return False
