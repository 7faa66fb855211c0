"""CRUD operations for database queries."""

import logging
from typing import Callable, Iterable, Optional

from sqlalchemy import exists
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from rate_insights.errors import UserCreationError
from rate_insights.models import FederalFundsInsight, User, YearlyInsight

logger = logging.getLogger(__name__)


# Dialects with INSERT ... ON CONFLICT support
UPSERT_INSERT_MAP = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}

# Columns replaced when a year is recomputed
INSIGHT_UPDATE_COLUMNS = (
    "average_rate",
    "highest_rate",
    "lowest_rate",
    "growth_percentage",
    "highest_rate_month",
    "lowest_rate_month",
)


def get_upsert_insert(db: Session) -> Callable:
    """
    Get the dialect-specific insert construct for the session's database.

    Raises:
        ValueError: If the dialect has no ON CONFLICT support
    """
    dialect = db.get_bind().dialect.name
    if dialect not in UPSERT_INSERT_MAP:
        raise ValueError(
            f"Upsert not supported for dialect: {dialect}. "
            f"Must be one of: {', '.join(UPSERT_INSERT_MAP.keys())}"
        )
    return UPSERT_INSERT_MAP[dialect]


# ============================================================================
# Insight CRUD Operations
# ============================================================================

def insight_exists(db: Session, year: int) -> bool:
    """
    Check whether insights for a year are stored.

    Args:
        db: Database session
        year: Calendar year

    Returns:
        True if a row for the year exists
    """
    return bool(
        db.query(exists().where(FederalFundsInsight.year == year)).scalar()
    )


def get_all_insights(db: Session) -> list[FederalFundsInsight]:
    """
    Get all stored yearly insights.

    Args:
        db: Database session

    Returns:
        Insight rows ordered by year descending
    """
    return (
        db.query(FederalFundsInsight)
        .order_by(FederalFundsInsight.year.desc())
        .all()
    )


def upsert_insights(db: Session, insights: Iterable[YearlyInsight]) -> int:
    """
    Insert or replace yearly insights keyed by year.

    Each row is committed on its own; the first failure aborts the rest of
    the batch and is re-raised.

    Args:
        db: Database session
        insights: Insights to store

    Returns:
        Number of rows written
    """
    insert = get_upsert_insert(db)
    written = 0

    for insight in insights:
        values = insight.model_dump(by_alias=False)
        stmt = insert(FederalFundsInsight).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["year"],
            set_={column: stmt.excluded[column] for column in INSIGHT_UPDATE_COLUMNS},
        )
        try:
            db.execute(stmt)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to insert insight for year {insight.year}: {e}")
            raise
        written += 1

    logger.info(f"Stored {written} yearly insights")
    return written


# ============================================================================
# User CRUD Operations
# ============================================================================

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """
    Get a single user by email.

    Args:
        db: Database session
        email: Email address

    Returns:
        User or None if not found
    """
    return db.query(User).filter(User.email == email).first()


def get_users(db: Session) -> list[User]:
    """Get all users ordered by id."""
    return db.query(User).order_by(User.id).all()


def create_user(db: Session, name: str, email: str) -> User:
    """
    Create a user.

    Args:
        db: Database session
        name: Display name
        email: Unique email address

    Returns:
        The stored user

    Raises:
        UserCreationError: If the row violates a constraint
    """
    user = User(name=name, email=email)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise UserCreationError(f"Creation error: failed to create user: {e.orig}") from e
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(user)
    logger.info(f"Created user {user.id}")
    return user
