"""Federal funds yearly insight endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rate_insights.aggregator import aggregate_yearly_insights, latest_complete_year
from rate_insights.context import ServiceContext, get_context
from rate_insights.crud import get_all_insights, insight_exists, upsert_insights
from rate_insights.database import get_db
from rate_insights.errors import StorageError
from rate_insights.models import InsightsMessage, YearlyInsight
from rate_insights.routing import TemplatedRoute

logger = logging.getLogger(__name__)

router = APIRouter(tags=["insights"], route_class=TemplatedRoute)


def fetch_and_aggregate(context: ServiceContext) -> list[YearlyInsight]:
    """Fetch the rate series and aggregate it into yearly insights."""
    observations = context.fetcher.fetch()
    insights = aggregate_yearly_insights(observations)
    context.metrics.record_throughput(len(observations))
    return insights


@router.get("/", response_model=InsightsMessage, response_model_exclude_none=True)
def federal_funds_insights(
    db: Session = Depends(get_db),
    context: ServiceContext = Depends(get_context),
) -> InsightsMessage:
    """
    Get yearly federal funds insights.

    Served from the database when the latest complete year is already
    stored; otherwise the series is fetched, aggregated and stored first.

    Returns:
        Yearly insights ordered by year descending

    Raises:
        500: Rate API or database failure
    """
    year = latest_complete_year()

    try:
        cached = insight_exists(db, year)
    except SQLAlchemyError as e:
        raise StorageError(f"Error checking current year data: {e}") from e

    if cached:
        try:
            rows = get_all_insights(db)
        except SQLAlchemyError as e:
            raise StorageError(f"Error retrieving data: {e}") from e

        return InsightsMessage(
            status="success",
            message="Data successfully fetched from the database.",
            data=[YearlyInsight.model_validate(row) for row in rows],
        )

    logger.info(f"No stored insights for {year}, fetching from rate API")
    insights = fetch_and_aggregate(context)

    try:
        upsert_insights(db, insights)
    except SQLAlchemyError as e:
        raise StorageError(f"Error storing insights: {e}") from e

    return InsightsMessage(
        status="success",
        message="Data successfully fetched, processed, and stored.",
        data=sorted(insights, key=lambda insight: insight.year, reverse=True),
    )


@router.get("/live", response_model=InsightsMessage, response_model_exclude_none=True)
def live_federal_funds_insights(
    context: ServiceContext = Depends(get_context),
) -> InsightsMessage:
    """
    Fetch and aggregate the rate series without touching the database.

    Returns:
        Yearly insights ordered by year descending
    """
    insights = fetch_and_aggregate(context)
    insights.sort(key=lambda insight: insight.year, reverse=True)

    return InsightsMessage(
        status="success",
        message="Fetched federal funds rate data successfully.",
        data=insights,
    )
