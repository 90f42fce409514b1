"""
Background maintenance: periodic expiry sweep of tokens and access keys.
"""
import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import StoreUnavailable
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "expiry_sweep"


def run_expiry_sweep(session_factory: Callable[[], Session]):
    """One sweep in its own session. Failures are logged; the next run retries."""
    db = session_factory()
    try:
        return TokenService(db).sweep_expired()
    except (SQLAlchemyError, StoreUnavailable) as e:
        logger.error(f"Expiry sweep failed: {e}", exc_info=True)
        return None
    finally:
        db.close()


class MaintenanceScheduler:
    """Runs the expiry sweep on a fixed interval, off the request threads."""

    def __init__(self, session_factory: Callable[[], Session], interval_seconds: int = 3600):
        self._session_factory = session_factory
        self._interval_seconds = interval_seconds
        self._scheduler: Optional[BackgroundScheduler] = None

    def start(self) -> None:
        if self.running:
            return
        self._scheduler = BackgroundScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 300,
            },
        )
        self._scheduler.add_job(
            run_expiry_sweep,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            args=[self._session_factory],
            id=SWEEP_JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Expiry sweep scheduled every {self._interval_seconds}s")

    def shutdown(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
