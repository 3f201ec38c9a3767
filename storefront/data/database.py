"""
Database connection and session management.
Uses SQLAlchemy; the database is the source of truth for products, stock and coupons.
"""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.utils.logger import get_logger

logger = get_logger("data")

# Base class for all our database models
Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """
    Create an engine for DATABASE_URL.

    In-memory SQLite (tests, local demos) gets a single shared connection so
    every session sees the same tables.
    """
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True, pool_size=3, max_overflow=2)


def make_session_factory(database_url: str, create_tables: bool = False) -> Optional[sessionmaker]:
    """Return a session factory, or None when no database is configured."""
    if not database_url:
        logger.info("DATABASE_URL not set; product/coupon lookups must be supplied by the caller")
        return None
    engine = make_engine(database_url)
    if create_tables:
        Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
