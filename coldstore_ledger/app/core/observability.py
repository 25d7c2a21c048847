"""
Observability middleware and logging setup.

Every request gets a correlation ID (taken from X-Correlation-ID when the
caller sends one) that is echoed back and attached to the access log line.
Ledger mutations and reads are logged under separate messages so a
reconciliation can grep the write path alone.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("coldstore")
access_logger = logging.getLogger("coldstore.access")

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the service logger tree once."""
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level.upper())


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers["X-Correlation-ID"] = correlation_id

        mutation = request.method in MUTATING_METHODS
        extra = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
        }
        message = "%s %s -> %s (%.2f ms) [%s]"
        args = (request.method, request.url.path, response.status_code, elapsed_ms, correlation_id)

        if response.status_code >= 500:
            access_logger.error("Ledger request failed: " + message, *args, extra=extra)
        elif response.status_code >= 400:
            access_logger.warning("Ledger request rejected: " + message, *args, extra=extra)
        elif mutation:
            access_logger.info("Ledger mutation: " + message, *args, extra=extra)
        else:
            access_logger.debug("Ledger query: " + message, *args, extra=extra)

        return response
