"""Alpha Vantage client for fetching the federal funds rate series."""
import logging
from typing import Any, Dict, List, Optional

import requests

from rate_insights.config import APIConfig
from rate_insights.errors import RateFetchError
from rate_insights.models import RateObservation

logger = logging.getLogger(__name__)

# Keys Alpha Vantage uses instead of "Data" when it refuses a request
NOTICE_KEYS = ("Information", "Note", "Error Message")


def parse_observations(payload: Any) -> List[RateObservation]:
    """Parse an Alpha Vantage JSON payload into observations.

    Args:
        payload: Decoded JSON body

    Returns:
        Observations in payload order; empty if the payload has no data

    Raises:
        RateFetchError: If the payload is not a JSON object
    """
    if not isinstance(payload, dict):
        raise RateFetchError("failed to parse JSON: expected an object")

    data = payload.get("Data")
    if data is None:
        notice = next((payload[key] for key in NOTICE_KEYS if key in payload), None)
        logger.warning(f"Rate API returned no data: {notice or 'missing Data field'}")
        return []

    observations = []
    for entry in data:
        if not isinstance(entry, dict):
            logger.warning(f"Ignoring malformed data entry: {entry!r}")
            continue
        observations.append(
            RateObservation(
                date=str(entry.get("date", "")),
                value=str(entry.get("value", "")),
            )
        )
    return observations


class RateFetcher:
    """Client for the Alpha Vantage economic indicator endpoint."""

    def __init__(self, config: APIConfig, session: Optional[requests.Session] = None):
        """Initialize fetcher.

        Args:
            config: Service configuration
            session: Optional preconfigured requests session
        """
        self.config = config
        self.session = session or requests.Session()

    def build_params(self) -> Dict[str, str]:
        """Query parameters for the rate request."""
        return {
            "function": self.config.rate_function,
            "interval": self.config.rate_interval,
            "apikey": self.config.api_key,
        }

    def fetch(self) -> List[RateObservation]:
        """Fetch the rate series.

        No retry is attempted; the caller surfaces any failure.

        Returns:
            List of observations

        Raises:
            RateFetchError: On transport failure, non-200 status or bad JSON
        """
        logger.info(
            f"Fetching {self.config.rate_function} ({self.config.rate_interval}) "
            f"from {self.config.api_base_url}"
        )

        try:
            response = self.session.get(
                self.config.api_base_url,
                params=self.build_params(),
                timeout=self.config.fetch_timeout,
            )
        except requests.RequestException as e:
            raise RateFetchError(f"failed to fetch data: {e}") from e

        if response.status_code != requests.codes.ok:
            raise RateFetchError(f"unexpected status code: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RateFetchError(f"failed to parse JSON: {e}") from e

        observations = parse_observations(payload)
        logger.info(f"Fetched {len(observations)} rate observations")
        return observations

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self.session.close()
