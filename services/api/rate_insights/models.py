"""SQLAlchemy ORM models, domain records and Pydantic response schemas."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import Column, Integer, String, Float
from pydantic import BaseModel, Field, ConfigDict

from rate_insights.database import Base


# ============================================================================
# SQLAlchemy ORM Models (Database Tables)
# ============================================================================

class FederalFundsInsight(Base):
    """Yearly federal funds insights table."""
    __tablename__ = "federal_funds_insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, unique=True, nullable=False)
    average_rate = Column(Float, nullable=False)
    highest_rate = Column(Float, nullable=False)
    lowest_rate = Column(Float, nullable=False)
    growth_percentage = Column(Float, nullable=False, default=0.0)
    highest_rate_month = Column(String(2), nullable=False)
    lowest_rate_month = Column(String(2), nullable=False)


class User(Base):
    """Users table."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)


# ============================================================================
# Domain Records
# ============================================================================

@dataclass(frozen=True)
class RateObservation:
    """One data point from the rate API, value kept as the raw string."""
    date: str
    value: str


class YearlyInsight(BaseModel):
    """Aggregated statistics for one calendar year of rate observations."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    year: int = Field(alias="Year")
    average_rate: float = Field(alias="AverageRate")
    highest_rate: float = Field(alias="HighestRate")
    lowest_rate: float = Field(alias="LowestRate")
    growth_percentage: float = Field(default=0.0, alias="GrowthPercentage")
    highest_rate_month: str = Field(alias="HighestRateMonth")
    lowest_rate_month: str = Field(alias="LowestRateMonth")


# ============================================================================
# Pydantic Request/Response Models (API)
# ============================================================================

class UserCreate(BaseModel):
    """Request body for user creation."""
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(
        min_length=3,
        max_length=255,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
    )


class UserData(BaseModel):
    """Public view of a user."""
    model_config = ConfigDict(from_attributes=True)

    name: str
    email: str


class UserMessage(BaseModel):
    """Status envelope carrying an optional user."""
    status: str
    message: Optional[str] = None
    data: Optional[UserData] = None


class UserListMessage(BaseModel):
    """Status envelope carrying a list of users."""
    status: str
    message: Optional[str] = None
    data: list[UserData] = []


class InsightsMessage(BaseModel):
    """Status envelope carrying yearly insights."""
    status: str
    message: Optional[str] = None
    data: list[YearlyInsight] = []
