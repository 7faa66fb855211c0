"""
Prometheus metrics for the rate insights service.

All metrics live in a dedicated registry owned by a ServiceMetrics instance,
so no default process/platform collectors are exported and each application
instance gets its own set.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional

import psutil
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from sqlalchemy import event
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class ServiceMetrics:
    """Metric definitions and update helpers."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        # HTTP metrics
        self.http_duration = Histogram(
            "http_response_duration_seconds",
            "Histogram of response time for HTTP requests",
            ["path", "method"],
            registry=self.registry,
        )
        self.http_requests = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["path", "method"],
            registry=self.registry,
        )
        self.http_errors = Counter(
            "http_errors_total",
            "Total number of HTTP errors",
            ["path", "method"],
            registry=self.registry,
        )
        self.http_status = Counter(
            "http_status_total",
            "Total number of HTTP responses by status code",
            ["path", "method", "code"],
            registry=self.registry,
        )

        # Availability
        self.uptime = Gauge(
            "application_uptime_seconds",
            "Application uptime in seconds",
            registry=self.registry,
        )
        self.downtime = Gauge(
            "application_downtime_seconds",
            "Application downtime in seconds",
            registry=self.registry,
        )
        self.availability = Gauge(
            "application_availability_rate",
            "Application availability rate in percentage",
            registry=self.registry,
        )

        # System
        self.cpu_usage = Gauge(
            "cpu_usage_percent",
            "CPU usage percentage",
            registry=self.registry,
        )
        self.memory_usage = Gauge(
            "memory_usage_bytes",
            "Memory usage in bytes",
            registry=self.registry,
        )

        # Database
        self.db_query_duration = Histogram(
            "db_query_duration_seconds",
            "Duration of database queries",
            registry=self.registry,
        )
        self.db_open_connections = Gauge(
            "db_open_connections",
            "Number of open database connections",
            registry=self.registry,
        )

        # Processed observations
        self.throughput = Counter(
            "throughput_total",
            "Total number of processed items (throughput)",
            registry=self.registry,
        )

    def record_http(self, path: str, method: str, status_code: int, duration: float) -> None:
        """Record one request against its route template."""
        self.http_duration.labels(path=path, method=method).observe(duration)
        self.http_requests.labels(path=path, method=method).inc()
        if status_code >= 400:
            self.http_errors.labels(path=path, method=method).inc()
        self.http_status.labels(path=path, method=method, code=str(status_code)).inc()

    def record_throughput(self, count: int) -> None:
        if count > 0:
            self.throughput.inc(count)

    def update_uptime(self, uptime_seconds: float, downtime_seconds: float = 0.0) -> None:
        """Set uptime, downtime and the derived availability percentage."""
        self.uptime.set(uptime_seconds)
        self.downtime.set(downtime_seconds)
        total = uptime_seconds + downtime_seconds
        availability = 100.0 if total <= 0 else uptime_seconds / total * 100.0
        self.availability.set(availability)

    def update_system(self, process: psutil.Process) -> None:
        """Sample CPU and resident memory of the current process."""
        self.cpu_usage.set(process.cpu_percent(interval=None))
        self.memory_usage.set(process.memory_info().rss)

    def instrument_engine(self, engine: Engine) -> None:
        """Attach query timing and connection counting to an engine."""

        @event.listens_for(engine, "before_cursor_execute")
        def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            conn.info.setdefault("query_start_time", []).append(time.perf_counter())

        @event.listens_for(engine, "after_cursor_execute")
        def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            start = conn.info["query_start_time"].pop()
            self.db_query_duration.observe(time.perf_counter() - start)

        @event.listens_for(engine, "handle_error")
        def _handle_error(exception_context):
            # after_cursor_execute never fires for a failed statement
            conn = exception_context.connection
            if conn is not None and conn.info.get("query_start_time"):
                conn.info["query_start_time"].pop()

        @event.listens_for(engine, "connect")
        def _connect(dbapi_connection, connection_record):
            self.db_open_connections.inc()

        @event.listens_for(engine, "close")
        def _close(dbapi_connection, connection_record):
            self.db_open_connections.dec()

    def render(self) -> bytes:
        """Exposition text for the dedicated registry."""
        return generate_latest(self.registry)


class MetricsSampler:
    """Periodic background updates of availability and system metrics."""

    def __init__(
        self,
        metrics: ServiceMetrics,
        uptime_interval: float = 1.0,
        system_interval: float = 10.0,
    ):
        self.metrics = metrics
        self.uptime_interval = uptime_interval
        self.system_interval = system_interval
        self.tasks: Dict[str, asyncio.Task] = {}
        self.is_running = False
        self._started_at = time.monotonic()
        self._process = psutil.Process()

    async def start(self) -> None:
        """Start both sampling loops on the running event loop."""
        self.is_running = True
        self._started_at = time.monotonic()

        self._schedule("uptime", self.uptime_interval, self._sample_uptime)
        self._schedule("system", self.system_interval, self._sample_system)

        logger.info("Metrics sampler started")

    async def stop(self) -> None:
        """Cancel the sampling loops and wait for them to finish."""
        self.is_running = False

        for task in self.tasks.values():
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self.tasks.clear()
        logger.info("Metrics sampler stopped")

    def _schedule(self, name: str, interval: float, sample: Callable[[], Awaitable[None]]) -> None:
        if name in self.tasks:
            logger.warning(f"Sampler {name} already scheduled")
            return

        async def run_periodic():
            while self.is_running:
                try:
                    await sample()
                except Exception as e:
                    logger.error(f"Error in {name} sampler: {e}")
                await asyncio.sleep(interval)

        self.tasks[name] = asyncio.create_task(run_periodic())
        logger.info(f"Scheduled {name} sampler every {interval}s")

    async def _sample_uptime(self) -> None:
        self.metrics.update_uptime(time.monotonic() - self._started_at)

    async def _sample_system(self) -> None:
        self.metrics.update_system(self._process)
