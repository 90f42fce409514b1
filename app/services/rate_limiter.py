"""
Per-IP fixed-window rate limiting, kept in process memory.
"""
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Dict

from fastapi import Request

from app.core.config import settings
from app.core.exceptions import RateLimited
from app.core.security import get_client_ip

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds


class RateLimiter:
    """
    Counts requests per identifier in windows of `window_seconds`.

    Ended windows are pruned at most once per window length, from `check`
    itself, so memory stays bounded by the identifiers seen in one window.
    """

    def __init__(self, max_requests: int, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: Dict[str, list] = {}  # identifier -> [window_start, count]
        self._last_prune = 0.0
        self._lock = Lock()

    def _prune(self, now: float) -> int:
        # Caller holds self._lock
        stale = [k for k, w in self._windows.items() if now - w[0] >= self.window_seconds]
        for k in stale:
            del self._windows[k]
        self._last_prune = now
        return len(stale)

    def check(self, identifier: str) -> RateLimitResult:
        now = time.time()
        with self._lock:
            if now - self._last_prune >= self.window_seconds:
                self._prune(now)

            window = self._windows.get(identifier)
            if window is None or now - window[0] >= self.window_seconds:
                window = self._windows[identifier] = [now, 0]

            reset_at = window[0] + self.window_seconds
            if window[1] >= self.max_requests:
                return RateLimitResult(False, self.max_requests, 0, reset_at)

            window[1] += 1
            return RateLimitResult(True, self.max_requests, self.max_requests - window[1], reset_at)

    def cleanup(self) -> int:
        """Drop windows that have ended."""
        with self._lock:
            return self._prune(time.time())

    def tracked(self) -> int:
        """Number of identifiers currently holding a window."""
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._last_prune = 0.0


api_limiter = RateLimiter(settings.RATE_LIMIT_PER_MINUTE)
login_limiter = RateLimiter(settings.LOGIN_RATE_LIMIT_PER_MINUTE)

# Skipped by the general limiter. Login and key redemption go through
# `limit_login_attempts`; token verification is not throttled.
LOGIN_PATHS = {"/api/auth/login", "/api/auth/verify", "/api/keys/verify"}


def rate_limit_headers(result: RateLimitResult) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(int(result.reset_at)),
    }


def limit_login_attempts(request: Request) -> None:
    """Dependency applying the tighter credential-guessing limit."""
    if not settings.RATE_LIMIT_ENABLED:
        return
    client_ip = get_client_ip(request)
    result = login_limiter.check(client_ip)
    if not result.allowed:
        logger.warning(f"Login rate limit exceeded for {client_ip} on {request.url.path}")
        raise RateLimited(
            "Too many login attempts, please try again later",
            limit=result.limit,
            reset_at=result.reset_at,
        )
