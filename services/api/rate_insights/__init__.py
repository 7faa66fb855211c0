"""
Federal Funds Rate Insights Service

Fetches the monthly federal funds rate series, aggregates it into yearly
insights, persists them to PostgreSQL and serves them over HTTP.
"""

__version__ = "1.0.0"
