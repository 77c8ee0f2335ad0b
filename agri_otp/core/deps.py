"""
Process-wide OTP service construction and lifecycle.

Host applications call ``otp_service_lifespan()`` from their startup hook (or
``get_otp_service()`` lazily) and inject the returned service into the auth
and business services that need it.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from agri_otp.core.clock import Clock
from agri_otp.core.config import Settings, settings as default_settings
from agri_otp.core.logging_config import setup_logging
from agri_otp.core.policy import OtpPolicy
from agri_otp.core.verification import OtpService

logger = logging.getLogger(__name__)

_service: Optional[OtpService] = None
_service_lock = threading.Lock()


def create_otp_service(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> OtpService:
    """
    Build an OtpService from settings and start its janitor if enabled.

    Args:
        settings: Settings to read policy and sweep periods from
        clock: Optional time source override

    Returns:
        OtpService: A ready-to-use service
    """
    s = settings or default_settings
    service = OtpService(policy=OtpPolicy.from_settings(s), clock=clock)
    if s.OTP_JANITOR_ENABLED:
        service.start_janitor(
            entry_interval_seconds=s.OTP_ENTRY_SWEEP_INTERVAL_SECONDS,
            attempt_interval_seconds=s.OTP_ATTEMPT_SWEEP_INTERVAL_SECONDS,
        )
    logger.info(
        f"OtpService initialized for {s.PROJECT_NAME} "
        f"(janitor: {'on' if s.OTP_JANITOR_ENABLED else 'off'})"
    )
    return service


def get_otp_service() -> OtpService:
    """Return the process-wide service, creating it on first use."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = create_otp_service()
    return _service


def reset_otp_service() -> None:
    """Shut down and forget the process-wide service."""
    global _service
    with _service_lock:
        service, _service = _service, None
    if service is not None:
        service.shutdown()


@contextmanager
def otp_service_lifespan(settings: Optional[Settings] = None) -> Iterator[OtpService]:
    """
    Own the process-wide service for the duration of the block.

    Logging is configured from LOG_LEVEL and JSON_LOGS on entry.

    Example:
        with otp_service_lifespan() as otp:
            run_application(otp)
    """
    global _service
    s = settings or default_settings
    setup_logging(s.LOG_LEVEL, s.JSON_LOGS, service_name=s.PROJECT_NAME)
    logger.info(f"Starting up {s.PROJECT_NAME}...")
    service = create_otp_service(s)
    with _service_lock:
        previous, _service = _service, service
    if previous is not None:
        previous.shutdown()
    try:
        yield service
    finally:
        with _service_lock:
            if _service is service:
                _service = None
        logger.info(f"Shutting down {s.PROJECT_NAME}...")
        service.shutdown()
