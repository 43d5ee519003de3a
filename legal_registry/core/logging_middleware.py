"""
Request Logging Middleware.

Logs every API request with a request id, the calling principal,
the response status and timing.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("legal_registry.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Structured request/response logging."""

    # Health checks are not logged
    EXCLUDE_PATHS = {
        "/healthz",
        "/livez",
        "/readyz",
        "/health",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in self.EXCLUDE_PATHS:
            return await call_next(request)

        request_id = request.headers.get("X-Request-Id", str(uuid.uuid4())[:8])
        start_time = time.perf_counter()

        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "principal": request.headers.get("X-Principal"),
            "client_ip": request.client.host if request.client else "unknown",
        }

        logger.info("Request started: %s %s", request.method, path, extra=log_data)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            log_data.update({"status_code": 500, "duration_ms": round(duration_ms, 2)})
            logger.exception(
                "Request failed: %s %s -> 500 (%.2fms) - %s",
                request.method, path, duration_ms, str(e),
                extra=log_data,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_data.update({
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        })

        if response.status_code >= 500:
            log_level = logging.ERROR
        elif response.status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO
        logger.log(
            log_level,
            "Request completed: %s %s -> %d (%.2fms)",
            request.method, path, response.status_code, duration_ms,
            extra=log_data,
        )

        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response
