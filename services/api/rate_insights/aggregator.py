"""
Yearly aggregation of monthly rate observations.

Observations are grouped by calendar year and month. For each year the
service reports the mean of all parsed rates, the highest and lowest monthly
rate with the month they occurred in, and growth of the yearly mean against
the previous year when that year is part of the same batch.
"""
import logging
import math
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from rate_insights.models import RateObservation, YearlyInsight

logger = logging.getLogger(__name__)


def parse_rate(value: str) -> Optional[float]:
    """
    Parse a rate value string.

    Args:
        value: Raw value from the API (e.g. "5.33", or "." for missing)

    Returns:
        Parsed rate, or None if the value is not a finite number
    """
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate):
        return None
    return rate


def parse_year_month(date_str: str) -> Optional[Tuple[int, str]]:
    """
    Extract year and month from a YYYY-MM-DD date string.

    Args:
        date_str: Observation date

    Returns:
        Tuple of (year, two-character month), or None if the date is too
        short or the year is not numeric
    """
    if len(date_str) < 7:
        return None
    year_part = date_str[:4]
    if not year_part.isdigit():
        return None
    return int(year_part), date_str[5:7]


def calculate_average(rates: List[float]) -> float:
    """Arithmetic mean of a non-empty list of rates."""
    return sum(rates) / len(rates)


def calculate_extremes(monthly_rates: Dict[str, float]) -> Tuple[float, float, str, str]:
    """
    Find the highest and lowest monthly rate.

    Months are visited in ascending order and only a strictly greater (or
    smaller) rate replaces the current extreme, so ties resolve to the
    earliest month.

    Args:
        monthly_rates: Mapping of month ("01".."12") to rate

    Returns:
        Tuple of (highest_rate, lowest_rate, highest_month, lowest_month)
    """
    months = sorted(monthly_rates)
    highest_month = lowest_month = months[0]
    highest_rate = lowest_rate = monthly_rates[months[0]]

    for month in months[1:]:
        rate = monthly_rates[month]
        if rate > highest_rate:
            highest_rate, highest_month = rate, month
        if rate < lowest_rate:
            lowest_rate, lowest_month = rate, month

    return highest_rate, lowest_rate, highest_month, lowest_month


def calculate_growth(current_average: float, previous_average: Optional[float]) -> float:
    """
    Year-over-year growth of the yearly mean, in percent.

    Returns 0 when there is no previous year or its mean is zero.
    """
    if previous_average is None or previous_average == 0:
        return 0.0
    return (current_average - previous_average) / previous_average * 100


def latest_complete_year(today: Optional[date] = None) -> int:
    """Most recent calendar year with a full series (the year before today)."""
    today = today or date.today()
    return today.year - 1


def aggregate_yearly_insights(observations: Iterable[RateObservation]) -> List[YearlyInsight]:
    """
    Aggregate observations into one insight per year present in the batch.

    Malformed observations are skipped and logged; they never abort the
    batch. Growth is computed only against years in the same batch.

    Args:
        observations: Observations in any order, possibly spanning many years

    Returns:
        Insights sorted by year ascending (empty if nothing could be parsed)
    """
    yearly_rates: Dict[int, List[float]] = defaultdict(list)
    monthly_rates: Dict[int, Dict[str, float]] = defaultdict(dict)
    skipped = 0

    # Organize data by year and month
    for observation in observations:
        rate = parse_rate(observation.value)
        if rate is None:
            logger.warning(
                f"Error parsing rate {observation.value!r} for {observation.date!r}, skipping"
            )
            skipped += 1
            continue

        parsed = parse_year_month(observation.date)
        if parsed is None:
            logger.warning(f"Invalid observation date {observation.date!r}, skipping")
            skipped += 1
            continue

        year, month = parsed
        yearly_rates[year].append(rate)
        # Last observation for a month wins
        monthly_rates[year][month] = rate

    averages = {year: calculate_average(rates) for year, rates in yearly_rates.items()}

    insights = []
    for year in sorted(yearly_rates):
        highest_rate, lowest_rate, highest_month, lowest_month = calculate_extremes(
            monthly_rates[year]
        )
        insights.append(
            YearlyInsight(
                year=year,
                average_rate=averages[year],
                highest_rate=highest_rate,
                lowest_rate=lowest_rate,
                growth_percentage=calculate_growth(averages[year], averages.get(year - 1)),
                highest_rate_month=highest_month,
                lowest_rate_month=lowest_month,
            )
        )

    logger.info(f"Aggregated {len(insights)} yearly insights ({skipped} observations skipped)")
    return insights
