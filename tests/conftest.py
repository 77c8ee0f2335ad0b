"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- A manually advanced clock
- A deterministic code generator
- An OtpService with the reference policy and no background janitor
"""

import logging
import random

import pytest

from agri_otp.core.clock import FrozenClock
from agri_otp.core.codes import CodeGenerator
from agri_otp.core.deps import reset_otp_service
from agri_otp.core.policy import OtpPolicy
from agri_otp.core.verification import OtpService


START = 1_700_000_000.0


@pytest.fixture
def clock():
    """Clock frozen at a fixed instant; advance it explicitly"""
    return FrozenClock(start=START)


@pytest.fixture
def policy():
    """Reference policy: 6/8 digits, 5/10 minute TTL, 3 failures, 15 minute window"""
    return OtpPolicy(
        code_length=6,
        admin_code_length=8,
        ttl_seconds=300,
        extended_ttl_seconds=600,
        max_failed_attempts=3,
        lockout_window_seconds=900,
    )


@pytest.fixture
def generator():
    """Seeded generator so failures are reproducible"""
    return CodeGenerator(random.Random(1234))


@pytest.fixture
def otp_service(policy, clock, generator):
    """OtpService driven by the frozen clock, janitor not started"""
    service = OtpService(policy=policy, clock=clock, generator=generator)
    yield service
    service.shutdown()


@pytest.fixture
def restore_logging():
    """Put root logger handlers and level back after a test reconfigures logging"""
    root = logging.getLogger()
    scheduler_logger = logging.getLogger("apscheduler")
    handlers = root.handlers[:]
    level = root.level
    scheduler_level = scheduler_logger.level
    yield
    scheduler_logger.setLevel(scheduler_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def clean_global_service():
    """Make sure no process-wide service outlives the test"""
    reset_otp_service()
    yield
    reset_otp_service()


def _flip_digits(code: str) -> str:
    return ''.join('1' if c == '0' else '0' for c in code)


@pytest.fixture
def wrong_code():
    """Returns a helper that builds a same-length code guaranteed to differ"""
    return _flip_digits
