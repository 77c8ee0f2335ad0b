"""
Errors raised by the OTP subsystem.

Only conditions that occur before a secret is at stake surface as exceptions.
Every verification failure collapses to ``False`` so callers cannot tell a
missing code from a wrong one.
"""

from typing import Optional


class OtpError(Exception):
    """Base class for OTP errors"""


class InvalidIdentity(OtpError, ValueError):
    """Identity was None, empty or only whitespace"""

    def __init__(self, message: str = "Identity cannot be null or empty"):
        super().__init__(message)


class InvalidCategory(OtpError, ValueError):
    """A category name did not match any known category"""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unknown OTP category: {value!r}")


class LockedOut(OtpError):
    """
    Issuance blocked because the identity reached the failed-attempt threshold.

    Attributes:
        identity: Normalized identity that is locked
        remaining_minutes: Whole minutes (rounded up) until the lock lifts
    """

    def __init__(self, identity: str, remaining_minutes: int, message: Optional[str] = None):
        self.identity = identity
        self.remaining_minutes = remaining_minutes
        super().__init__(
            message
            or "Account temporarily locked due to multiple failed attempts. "
               f"Please try again in {remaining_minutes} minute(s)."
        )
