"""Database engine and session management."""

import logging
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from rate_insights.config import APIConfig

logger = logging.getLogger(__name__)

# Base class for ORM models
Base = declarative_base()


def create_db_engine(config: APIConfig) -> Engine:
    """
    Create the SQLAlchemy engine for the configured database.

    Args:
        config: Service configuration

    Returns:
        Engine bound to `config.database_url`
    """
    return create_engine(
        config.database_url,
        pool_pre_ping=True,  # Verify connections before using
        echo=False,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine
    )


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency for FastAPI endpoints to get database session.

    Yields:
        Database session that is automatically closed after use.
    """
    db = request.app.state.context.session_factory()
    try:
        yield db
    finally:
        db.close()


def check_db_connection(engine: Engine) -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection successful, False otherwise.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False
