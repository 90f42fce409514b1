"""
Request logging middleware for production error tracking.
"""
import time
import uuid
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.security import get_client_ip

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests with trace_id, client IP and latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id = str(uuid.uuid4())
        request.state.trace_id = trace_id
        client_ip = get_client_ip(request)

        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as exc:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error(
                f"[{trace_id}] {request.method} {request.url.path} -> EXCEPTION after {latency_ms}ms: {exc}",
                exc_info=True
            )
            # Re-raise to let the global exception handler deal with it
            raise

        latency_ms = int((time.time() - start_time) * 1000)
        status_code = response.status_code
        log_level = logging.WARNING if status_code >= 400 else logging.INFO

        # Query strings and Authorization headers are never logged
        logger.log(
            log_level,
            f"[{trace_id}] {client_ip} {request.method} {request.url.path} -> {status_code} ({latency_ms}ms)"
        )
        if latency_ms > SLOW_REQUEST_MS:
            logger.warning(f"[{trace_id}] Slow request: {request.method} {request.url.path} took {latency_ms}ms")

        response.headers["X-Trace-ID"] = trace_id
        return response
