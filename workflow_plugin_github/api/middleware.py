"""
Request tracking middleware for the webhook receiver.

Every request gets a request id (taken from ``X-Request-ID`` when the caller
sends one) that is bound to the structlog context together with the GitHub
delivery id and event type, so all log lines written while a delivery is
processed can be correlated with GitHub's delivery log.
"""

import time
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from workflow_plugin_github.utils.logging import (
    get_logger,
    bind_contextvars,
    clear_contextvars,
    generate_request_id,
)
from workflow_plugin_github.webhook.module import DELIVERY_HEADER, EVENT_HEADER

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Polled by orchestrators; logged at debug only
QUIET_PATHS = ("/health",)


def _bind_request_context(request: Request) -> str:
    """Bind per-request logging context and return the request id."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()

    clear_contextvars()
    context = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
    }
    delivery_id = request.headers.get(DELIVERY_HEADER)
    if delivery_id:
        context["delivery_id"] = delivery_id
        context["github_event"] = request.headers.get(EVENT_HEADER, "")
    bind_contextvars(**context)
    return request_id


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with timing and echoes the request id back."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = _bind_request_context(request)
        log = logger.debug if request.url.path in QUIET_PATHS else logger.info
        started = time.perf_counter()

        log("request_started", client=request.client.host if request.client else "unknown")
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            log(
                "request_completed",
                status_code=response.status_code,
                duration_ms=_elapsed_ms(started),
            )
            return response
        except Exception as exc:
            logger.error(
                "request_failed",
                duration_ms=_elapsed_ms(started),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise
        finally:
            clear_contextvars()
