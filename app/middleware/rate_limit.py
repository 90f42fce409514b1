"""
General API rate limiting middleware.
"""
import logging
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.security import get_client_ip
from app.services.rate_limiter import LOGIN_PATHS, api_limiter, rate_limit_headers

logger = logging.getLogger(__name__)

EXEMPT_PATHS = {"/api/health"} | LOGIN_PATHS


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP limit on /api traffic. Login endpoints have their own limiter."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path.rstrip("/") or "/"
        if (
            not settings.RATE_LIMIT_ENABLED
            or request.method == "OPTIONS"
            or not path.startswith("/api")
            or path in EXEMPT_PATHS
        ):
            return await call_next(request)

        result = api_limiter.check(get_client_ip(request))
        headers = rate_limit_headers(result)
        if not result.allowed:
            logger.warning(f"Rate limit exceeded: {request.method} {path}")
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": "Too many requests, please try again later",
                    "resetAt": datetime.fromtimestamp(result.reset_at, tz=timezone.utc).isoformat(),
                },
                headers=headers,
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = headers["X-RateLimit-Limit"]
        response.headers["X-RateLimit-Remaining"] = headers["X-RateLimit-Remaining"]
        return response
