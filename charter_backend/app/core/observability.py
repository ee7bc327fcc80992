"""
Observability Middleware.

Propagates a correlation ID and writes one structured log line per request,
tagged with the tenant the request acted on.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("charter.http")

CORRELATION_HEADER = "X-Correlation-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        response = await call_next(request)

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = str(duration_ms)

        log_data = {
            "correlation_id": correlation_id,
            "tenant_id": request.headers.get("X-Tenant-ID"),
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }

        # Domain rejections (404/409/422) are expected traffic
        if response.status_code >= 500:
            logger.error("Request failed", extra=log_data)
        elif response.status_code in (401, 403, 429):
            logger.warning("Request refused", extra=log_data)
        else:
            logger.info("Request handled", extra=log_data)

        return response
