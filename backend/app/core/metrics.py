"""
Prometheus metrics: HTTP traffic plus business counters for orders, zones, slots, restaurant lookups and side effects.
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.openmetrics.exposition import generate_latest as generate_latest_openmetrics
from fastapi import Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import time

from backend.app.core.logging import bind_request_context, clear_request_context, get_logger

logger = get_logger(__name__)


# Request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Business metrics
orders_created_total = Counter(
    'orders_created_total',
    'Total number of orders created',
    ['order_type']
)

order_status_transitions_total = Counter(
    'order_status_transitions_total',
    'Total number of order status transitions',
    ['from_status', 'to_status']
)

zone_resolutions_total = Counter(
    'zone_resolutions_total',
    'Delivery zone resolutions by outcome',
    ['outcome']
)

slot_bookings_total = Counter(
    'slot_bookings_total',
    'Delivery slot booking attempts by result',
    ['result']
)

restaurant_lookups_total = Counter(
    'restaurant_lookups_total',
    'Nearest restaurant lookups by outcome',
    ['outcome']
)

side_effect_failures_total = Counter(
    'side_effect_failures_total',
    'Failed best-effort side effects (print, broadcast)',
    ['kind']
)


def _endpoint_label(request: Request) -> str:
    """Route template (/orders/{order_id}) instead of the raw path, to bound label cardinality."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if path else "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Per-request metrics plus request-scoped log context."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        request_id = bind_request_context(
            request.method, request.url.path, request.headers.get("X-Request-ID")
        )
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
        finally:
            duration = time.perf_counter() - start_time
            endpoint = _endpoint_label(request)
            http_requests_total.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            http_request_duration_seconds.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(duration)
            if status_code >= 500:
                logger.error("Request failed", status_code=status_code, duration=round(duration, 4))
            clear_request_context()

        return response


def get_metrics_response(openmetrics: bool = False) -> Response:
    """Prometheus text format, or OpenMetrics when requested."""
    if openmetrics:
        return Response(
            content=generate_latest_openmetrics(),
            media_type="application/openmetrics-text; version=1.0.0; charset=utf-8",
        )
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
