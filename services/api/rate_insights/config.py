"""Configuration management for the rate insights service."""

import logging
import sys
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class APIConfig(BaseSettings):
    """Service configuration loaded from the environment and `.env`."""

    # Required settings
    api_key: str = Field(min_length=1)
    database_url: str = Field(min_length=1)

    # Alpha Vantage endpoint
    api_base_url: str = "https://www.alphavantage.co/query"
    rate_function: str = "FEDERAL_FUNDS_RATE"
    rate_interval: str = "monthly"
    fetch_timeout: Optional[float] = None

    # API settings
    api_title: str = "Federal Funds Rate Insights API"
    api_version: str = "1.0.0"
    api_description: str = "Yearly insights computed from the monthly federal funds rate"
    host: str = "0.0.0.0"
    port: int = 8085

    # Database
    create_tables: bool = True

    # Background metric samplers
    uptime_interval_seconds: float = 1.0
    system_metrics_interval_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


def load_config(**overrides) -> APIConfig:
    """
    Build configuration, exiting the process if a required value is missing.

    Args:
        overrides: Keyword arguments passed straight to APIConfig

    Returns:
        Validated configuration
    """
    try:
        config = APIConfig(**overrides)
    except ValidationError as e:
        missing = ", ".join(
            str(error["loc"][0]).upper() for error in e.errors() if error["loc"]
        )
        logger.critical(f"Error loading configuration: {missing} is not set in the environment")
        sys.exit(1)

    logger.info("Configuration loaded successfully")
    return config
