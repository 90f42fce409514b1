"""
Tests for rate limiting and retry on a busy database.
"""
from unittest.mock import MagicMock, patch

import pytest
from fastapi import status
from sqlalchemy.exc import OperationalError

from app.core.database import is_transient_error, run_with_retry
from app.core.exceptions import StoreUnavailable
from app.services.rate_limiter import RateLimiter, api_limiter
from app.services.maintenance import MaintenanceScheduler, run_expiry_sweep
from conftest import ADMIN_PASSWORD, TestingSessionLocal, ip_headers


def locked_error():
    return OperationalError("UPDATE tokens", {}, Exception("database is locked"))


def test_rate_limiter_counts_per_identifier():
    limiter = RateLimiter(max_requests=2, window_seconds=60)

    assert limiter.check("a").allowed
    second = limiter.check("a")
    assert second.allowed
    assert second.remaining == 0
    assert not limiter.check("a").allowed
    assert limiter.check("b").allowed


def test_rate_limiter_window_resets():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    with patch("app.services.rate_limiter.time.time", return_value=1000.0):
        assert limiter.check("a").allowed
        assert not limiter.check("a").allowed
    with patch("app.services.rate_limiter.time.time", return_value=1061.0):
        assert limiter.check("a").allowed
        assert limiter.cleanup() == 0


def test_rate_limiter_forgets_ended_windows():
    limiter = RateLimiter(max_requests=5, window_seconds=60)
    with patch("app.services.rate_limiter.time.time", return_value=1000.0):
        for i in range(1000):
            limiter.check(f"10.1.{i // 256}.{i % 256}")
        assert limiter.tracked() == 1000

    with patch("app.services.rate_limiter.time.time", return_value=1061.0):
        limiter.check("10.2.0.1")
        assert limiter.tracked() == 1


def test_api_rate_limit_returns_429(client):
    with patch.object(api_limiter, "max_requests", 2):
        headers = ip_headers("203.0.113.9")
        assert client.get("/api/resources/AIGC", headers=headers).status_code == 200
        assert client.get("/api/resources/AIGC", headers=headers).status_code == 200
        response = client.get("/api/resources/AIGC", headers=headers)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json()["success"] is False
        assert "resetAt" in response.json()
        assert response.headers["X-RateLimit-Remaining"] == "0"

        # Other clients are unaffected
        assert client.get("/api/resources/AIGC", headers=ip_headers("203.0.113.10")).status_code == 200


def test_login_attempts_are_limited(client):
    headers = ip_headers("198.51.100.7")
    for _ in range(10):
        assert client.post("/api/auth/login", json={"password": "wrong"}, headers=headers).status_code == 401

    response = client.post("/api/auth/login", json={"password": ADMIN_PASSWORD}, headers=headers)

    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert response.json()["success"] is False
    assert "X-RateLimit-Reset" in response.headers


def test_transient_error_detection():
    assert is_transient_error(locked_error())
    assert is_transient_error(OperationalError("x", {}, Exception("database is busy")))
    assert not is_transient_error(OperationalError("x", {}, Exception("no such table: tokens")))


def test_run_with_retry_recovers_from_lock():
    db = MagicMock()
    operation = MagicMock(side_effect=[locked_error(), locked_error(), "done"])

    assert run_with_retry(db, operation, attempts=3, base_delay=0) == "done"
    assert operation.call_count == 3
    assert db.rollback.call_count == 2


def test_run_with_retry_gives_up_after_attempts():
    db = MagicMock()
    operation = MagicMock(side_effect=locked_error())

    with pytest.raises(StoreUnavailable):
        run_with_retry(db, operation, attempts=3, base_delay=0)
    assert operation.call_count == 3


def test_run_with_retry_does_not_retry_other_errors():
    db = MagicMock()
    operation = MagicMock(side_effect=OperationalError("x", {}, Exception("disk I/O error")))

    with pytest.raises(OperationalError):
        run_with_retry(db, operation, attempts=3, base_delay=0)
    assert operation.call_count == 1


def test_busy_store_answers_503(client):
    with patch(
        "app.services.token_service.TokenService.issue_admin_token",
        side_effect=StoreUnavailable(),
    ):
        response = client.post("/api/auth/login", json={"password": ADMIN_PASSWORD})

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json() == {
        "success": False,
        "message": "Storage temporarily unavailable, please retry",
    }


def test_run_expiry_sweep_uses_its_own_session():
    assert run_expiry_sweep(TestingSessionLocal) == (0, 0)


def test_run_expiry_sweep_logs_failures():
    session = MagicMock()
    session.query.side_effect = OperationalError("DELETE", {}, Exception("no such table: tokens"))

    assert run_expiry_sweep(lambda: session) is None
    session.close.assert_called_once()


def test_maintenance_scheduler_start_and_shutdown():
    scheduler = MaintenanceScheduler(TestingSessionLocal, interval_seconds=3600)

    scheduler.start()
    try:
        assert scheduler.running
        scheduler.start()
    finally:
        scheduler.shutdown()
    assert not scheduler.running
