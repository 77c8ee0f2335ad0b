"""
OTP models package.
"""

from agri_otp.models.otp import AttemptRecord, Category, CodeEntry, Role

__all__ = ["AttemptRecord", "Category", "CodeEntry", "Role"]
