"""
Database engine helpers
Builds the shared SQLAlchemy engine from DATABASE_URL
"""

import logging

from sqlalchemy import create_engine

logger = logging.getLogger(__name__)

SQLITE_FALLBACK_URL = "sqlite:///lottery.db"


def normalize_database_url(database_url):
    """
    Normalize a DATABASE_URL for SQLAlchemy

    Heroku/Railway style ``postgres://`` URLs are rewritten to
    ``postgresql://``; an empty URL falls back to a local SQLite file.
    """
    if not database_url:
        logger.warning(f"⚠️ DATABASE_URL not set! Using local SQLite database ({SQLITE_FALLBACK_URL})")
        return SQLITE_FALLBACK_URL

    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def create_db_engine(database_url):
    """
    Create the SQLAlchemy engine with pool settings suited to a long-running bot

    Args:
        database_url: Database URL (postgres:// accepted)

    Returns:
        sqlalchemy.engine.Engine
    """
    database_url = normalize_database_url(database_url)

    if database_url.startswith('postgresql'):
        engine = create_engine(
            database_url,
            pool_pre_ping=True,     # Detect disconnections
            pool_recycle=1800,      # Recycle connections after 30 minutes
            pool_size=10,
            max_overflow=10,
            pool_timeout=30,        # Wait up to 30 seconds for a connection
            pool_use_lifo=True,
            connect_args={
                "connect_timeout": 10,
                "keepalives": 1,
                "keepalives_idle": 30,
                "keepalives_interval": 10,
                "keepalives_count": 5
            }
        )
    else:
        # Store calls run in worker threads
        engine = create_engine(
            database_url,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False}
        )

    location = database_url.split('@')[1] if '@' in database_url else 'SQLite (local)'
    logger.info(f"📊 Using database: {location}")
    return engine
