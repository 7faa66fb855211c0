"""Unit tests for the rate fetcher."""
import pytest
from unittest.mock import Mock
import requests

from rate_insights.errors import RateFetchError
from rate_insights.fetcher import RateFetcher, parse_observations
from rate_insights.models import RateObservation


@pytest.fixture
def mock_session():
    """Create a requests session stub."""
    return Mock(spec=requests.Session)


@pytest.fixture
def fetcher(test_config, mock_session):
    """Create fetcher for testing."""
    return RateFetcher(test_config, session=mock_session)


def make_response(status_code=200, payload=None, json_error=None):
    response = Mock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


class TestRateFetcher:
    """Test rate fetcher functionality."""

    def test_build_params(self, fetcher):
        """Test query parameters carry function, interval and key."""
        params = fetcher.build_params()

        assert params == {
            "function": "FEDERAL_FUNDS_RATE",
            "interval": "monthly",
            "apikey": "test-key",
        }

    def test_fetch_success(self, fetcher, mock_session):
        """Test a successful fetch parses observations."""
        mock_session.get.return_value = make_response(payload={
            "name": "Effective Federal Funds Rate",
            "Data": [
                {"date": "2024-02-01", "value": "5.33"},
                {"date": "2024-01-01", "value": "5.33"},
            ],
        })

        observations = fetcher.fetch()

        assert observations == [
            RateObservation(date="2024-02-01", value="5.33"),
            RateObservation(date="2024-01-01", value="5.33"),
        ]
        args, kwargs = mock_session.get.call_args
        assert args[0] == "https://www.alphavantage.co/query"
        assert kwargs["params"]["apikey"] == "test-key"
        assert kwargs["timeout"] is None

    def test_fetch_transport_error(self, fetcher, mock_session):
        """Test transport failures raise without retrying."""
        mock_session.get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(RateFetchError, match="failed to fetch data"):
            fetcher.fetch()

        assert mock_session.get.call_count == 1

    def test_fetch_bad_status(self, fetcher, mock_session):
        """Test non-200 responses raise."""
        mock_session.get.return_value = make_response(status_code=503)

        with pytest.raises(RateFetchError, match="unexpected status code: 503"):
            fetcher.fetch()

    def test_fetch_invalid_json(self, fetcher, mock_session):
        """Test undecodable bodies raise."""
        mock_session.get.return_value = make_response(json_error=ValueError("Expecting value"))

        with pytest.raises(RateFetchError, match="failed to parse JSON"):
            fetcher.fetch()

    def test_close(self, fetcher, mock_session):
        """Test closing releases the session."""
        fetcher.close()
        mock_session.close.assert_called_once()


def test_parse_observations_without_data():
    """Test API notices without a Data array yield no observations."""
    payload = {"Information": "API rate limit reached"}

    assert parse_observations(payload) == []


def test_parse_observations_rejects_non_object():
    """Test a JSON array payload is a parse failure."""
    with pytest.raises(RateFetchError):
        parse_observations([{"date": "2024-01-01", "value": "5.33"}])


def test_parse_observations_skips_malformed_entries():
    """Test non-object entries are dropped and missing keys become empty."""
    payload = {"Data": ["junk", {"date": "2024-01-01"}, {"date": "2024-02-01", "value": 5.33}]}

    observations = parse_observations(payload)

    assert observations == [
        RateObservation(date="2024-01-01", value=""),
        RateObservation(date="2024-02-01", value="5.33"),
    ]
