"""Access logging middleware using structlog with OTEL trace correlation."""

import time
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

# Path or query parameters naming the network object a request touched
RESOURCE_ID_PARAMS = ("line_id", "station_id", "favorite_id")


def resource_context(request: Request) -> dict[str, str]:
    """
    Route template and resource ids of a routed request.

    Routing fills ``route`` and ``path_params`` into the request scope, so this
    is read after the response. Unrouted requests (404 on an unknown path)
    give an empty dict.
    """
    context: dict[str, str] = {}
    if (route := request.scope.get("route")) is not None:
        context["route"] = route.path

    path_params = request.scope.get("path_params") or {}
    for name in RESOURCE_ID_PARAMS:
        value = path_params.get(name) or request.query_params.get(name)
        if value is not None:
            context[name] = str(value)
    return context


class AccessLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log one ``http_request`` event per request.

    Besides method, path, status and latency, the event carries the route
    template (``/api/v1/lines/{line_id}/sections``) and any line, station or
    favorite id, so all requests against one line can be found together.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request and log access information."""
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        log_kwargs: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
            **resource_context(request),
        }
        # Spoofable; logged next to the peer address, never instead of it
        if xff_header := request.headers.get("x-forwarded-for"):
            log_kwargs["forwarded_for"] = xff_header.split(",")[0].strip()

        logger.info("http_request", **log_kwargs)

        return response
