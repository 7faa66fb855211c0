"""Test configuration and fixtures."""

import pytest
from unittest.mock import Mock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from rate_insights.aggregator import latest_complete_year
from rate_insights.config import APIConfig
from rate_insights.database import Base, get_db
from rate_insights.fetcher import RateFetcher
from rate_insights.main import create_app
from rate_insights.models import FederalFundsInsight, RateObservation, User

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def test_config():
    """Configuration with required values set and fast samplers."""
    return APIConfig(
        _env_file=None,
        api_key="test-key",
        database_url=TEST_DATABASE_URL,
        uptime_interval_seconds=0.05,
        system_metrics_interval_seconds=0.05,
    )


@pytest.fixture(scope="function")
def test_engine():
    """Create a single-connection in-memory engine with tables."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db(test_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine
    )

    db = TestingSessionLocal()

    yield db

    db.close()


@pytest.fixture
def sample_observations():
    """Two full years of monthly observations (2022 avg 1.0, 2023 avg 1.5)."""
    observations = []
    for month in range(1, 13):
        observations.append(RateObservation(date=f"2023-{month:02d}-01", value="1.5"))
        observations.append(RateObservation(date=f"2022-{month:02d}-01", value="1.0"))
    # Move the 2023 extremes away from the mean, keeping the average at 1.5
    observations[0] = RateObservation(date="2023-01-01", value="1.0")
    observations[2] = RateObservation(date="2023-02-01", value="2.0")
    return observations


@pytest.fixture
def mock_fetcher(sample_observations):
    """Rate fetcher stub returning the sample observations."""
    fetcher = Mock(spec=RateFetcher)
    fetcher.fetch.return_value = sample_observations
    return fetcher


@pytest.fixture
def app(test_config, test_engine, mock_fetcher):
    """Application wired to the test engine and fetcher stub."""
    return create_app(config=test_config, engine=test_engine, fetcher=mock_fetcher)


@pytest.fixture(scope="function")
def client(app, test_db):
    """Create a test client with test database."""
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_users(test_db):
    """Create sample users."""
    users = [
        User(name="Ada Lovelace", email="ada@example.com"),
        User(name="Alan Turing", email="alan@example.com"),
    ]

    for user in users:
        test_db.add(user)

    test_db.commit()

    return users


@pytest.fixture
def stored_insights(test_db):
    """Stored insights including the latest complete year."""
    latest = latest_complete_year()
    rows = [
        FederalFundsInsight(
            year=latest - 1,
            average_rate=4.5,
            highest_rate=5.0,
            lowest_rate=4.0,
            growth_percentage=0.0,
            highest_rate_month="12",
            lowest_rate_month="01",
        ),
        FederalFundsInsight(
            year=latest,
            average_rate=5.0,
            highest_rate=5.33,
            lowest_rate=4.5,
            growth_percentage=11.11,
            highest_rate_month="08",
            lowest_rate_month="01",
        ),
    ]

    for row in rows:
        test_db.add(row)

    test_db.commit()

    return rows
