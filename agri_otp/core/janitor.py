"""
Background sweeper for expired OTP state.

An APScheduler ``BackgroundScheduler`` running two interval jobs: one for the
entry store and one for the attempt tracker. The first run of each job happens
one full period after start.
"""

import logging
from typing import Callable

from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

ENTRY_SWEEP_JOB_ID = "otp-entries"
ATTEMPT_SWEEP_JOB_ID = "otp-attempts"


def _log_job_error(event: JobExecutionEvent) -> None:
    # The scheduler keeps the job; it runs again on its next period
    logger.error(
        f"Error during {event.job_id} sweep: {event.exception}",
        exc_info=(type(event.exception), event.exception, event.exception.__traceback__),
    )


def create_janitor(
    sweep_codes: Callable[[], int],
    sweep_attempts: Callable[[], int],
    entry_interval_seconds: float = 120,
    attempt_interval_seconds: float = 300,
) -> BackgroundScheduler:
    """
    Build a started scheduler that sweeps both OTP stores periodically.

    Args:
        sweep_codes: Removes expired codes, returns how many
        sweep_attempts: Removes lapsed attempt records, returns how many
        entry_interval_seconds: Period of the code sweep
        attempt_interval_seconds: Period of the attempt sweep

    Returns:
        BackgroundScheduler: Running scheduler; call ``shutdown()`` to stop it
    """
    if entry_interval_seconds <= 0 or attempt_interval_seconds <= 0:
        raise ValueError("Sweep intervals must be positive")

    scheduler = BackgroundScheduler(
        daemon=True,
        job_defaults={"coalesce": True, "max_instances": 1},
    )
    scheduler.add_listener(_log_job_error, EVENT_JOB_ERROR)
    scheduler.add_job(sweep_codes, "interval", seconds=entry_interval_seconds, id=ENTRY_SWEEP_JOB_ID)
    scheduler.add_job(sweep_attempts, "interval", seconds=attempt_interval_seconds, id=ATTEMPT_SWEEP_JOB_ID)
    scheduler.start()

    logger.info(
        f"OTP janitor started: {ENTRY_SWEEP_JOB_ID} every {entry_interval_seconds:g}s, "
        f"{ATTEMPT_SWEEP_JOB_ID} every {attempt_interval_seconds:g}s"
    )
    return scheduler
