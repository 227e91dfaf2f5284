import logging
import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("app.access")

REQUEST_COUNT = Counter(
    "olumba_http_requests_total",
    "HTTP requests by method, route and status",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "olumba_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "path"],
)

_SKIP_PATHS = {"/health", "/metrics"}
UNMATCHED_ROUTE = "unmatched"


def _route_label(request: Request) -> str:
    # The router records the matched route in the scope; label by its template
    # so metric cardinality stays bounded.
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _SKIP_PATHS:
            return await call_next(request)

        method = request.method
        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        status = response.status_code
        route = _route_label(request)
        REQUEST_COUNT.labels(method=method, path=route, status=str(status)).inc()
        REQUEST_LATENCY.labels(method=method, path=route).observe(duration)

        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        client_ip = request.client.host if request.client else "unknown"
        logger.log(
            level,
            "%s %s %d %.1fms from %s",
            method,
            path,
            status,
            duration * 1000,
            client_ip,
            extra={
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration * 1000, 2),
                "client_ip": client_ip,
            },
        )
        return response
