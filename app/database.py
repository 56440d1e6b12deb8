"""
Database connection and session management
Using SQLModel with asyncpg (PostgreSQL) or aiosqlite (SQLite)
"""
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from typing import AsyncGenerator, Optional
import ssl
import os
import tempfile
import logging
from app.config import DATABASE_URL, DB_SSL_CERT_CONTENT, DEBUG, MODE

logger = logging.getLogger(__name__)


def get_async_database_url(database_url: str) -> str:
    """Convert a plain database URL to its async driver variant."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def build_ssl_context(cert_content: str) -> Optional[ssl.SSLContext]:
    """
    Write the CA certificate to a temp file and build an SSL context for asyncpg.
    Returns None when no certificate is configured or it cannot be loaded.
    """
    if not cert_content:
        return None

    cert_path = os.path.join(tempfile.gettempdir(), "db-ca.crt")
    try:
        with open(cert_path, "w") as f:
            f.write(cert_content)

        ssl_context = ssl.create_default_context(cafile=cert_path)
        # Managed PostgreSQL providers usually present a certificate for a pooler host
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_REQUIRED
        logger.info(f"SSL context created from certificate at {cert_path}")
        return ssl_context
    except (OSError, ssl.SSLError) as e:
        logger.error(f"Failed to create SSL context: {e}", exc_info=True)
        return None


async_database_url = get_async_database_url(DATABASE_URL)
is_sqlite = async_database_url.startswith("sqlite")

engine_kwargs = {
    "echo": DEBUG,  # Set to True for SQL query logging
    "future": True,
}

if is_sqlite:
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    connect_args = {
        "command_timeout": 30,
        "statement_cache_size": 0,  # pgbouncer does not support prepared statements
        "server_settings": {
            "application_name": "content_publisher"
        }
    }
    ssl_config = build_ssl_context(DB_SSL_CERT_CONTENT)
    if ssl_config:
        connect_args["ssl"] = ssl_config
        logger.info("SSL enabled for database connections")
    else:
        logger.warning("SSL not configured - database connections will be unencrypted")

    engine_kwargs.update(
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,
        pool_timeout=30,
        pool_size=5,
        max_overflow=10,
        connect_args=connect_args,
    )

async_engine = create_async_engine(async_database_url, **engine_kwargs)

# Log URL without password
logger.info(f"Database engine created (mode: {MODE}, url: {async_database_url.split('@')[-1]})")

# Create async session factory
AsyncSessionLocal = sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get async database session
    Usage: async def endpoint(session: AsyncSession = Depends(get_async_session))

    Every request gets its own session; nothing is shared between publishes.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """
    Initialize database - create all tables
    Only used when AUTO_CREATE_TABLES is enabled; Alembic owns the schema otherwise
    """
    # Import models so SQLModel registers the tables
    from app.apps.publish import models  # noqa: F401
    from app.apps.common.association_tables import content_tags  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables created")


async def close_db():
    """
    Close database connections
    Call this on application shutdown
    """
    await async_engine.dispose()
    logger.info("Database connections closed")


async def test_db_connection():
    """
    Test database connection - useful for debugging
    """
    try:
        async with AsyncSessionLocal() as session:
            from sqlalchemy import text
            result = await session.execute(text("SELECT 1"))
            value = result.scalar()
            logger.info(f"Database connection test successful: {value}")
            return True
    except Exception as e:
        logger.error(f"Database connection test failed: {e}", exc_info=True)
        return False
