"""
Issuance and lockout policy.

Resolves code length and lifetime from a category, and carries the failed
attempt threshold and lockout window used by the attempt tracker.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from agri_otp.core.config import Settings, settings as default_settings
from agri_otp.models.otp import Category, Role


class OtpPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    code_length: int = Field(6, gt=0)
    admin_code_length: int = Field(8, gt=0)
    ttl_seconds: float = Field(300, gt=0)
    extended_ttl_seconds: float = Field(600, gt=0)
    max_failed_attempts: int = Field(3, gt=0)
    lockout_window_seconds: float = Field(900, gt=0)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "OtpPolicy":
        s = settings or default_settings
        return cls(
            code_length=s.OTP_CODE_LENGTH,
            admin_code_length=s.OTP_ADMIN_CODE_LENGTH,
            ttl_seconds=s.OTP_TTL_SECONDS,
            extended_ttl_seconds=s.OTP_EXTENDED_TTL_SECONDS,
            max_failed_attempts=s.OTP_MAX_FAILED_ATTEMPTS,
            lockout_window_seconds=s.OTP_LOCKOUT_WINDOW_SECONDS,
        )

    def code_length_for(self, category: Category) -> int:
        if category is Category.ADMIN_OPERATION:
            return self.admin_code_length
        return self.code_length

    def ttl_for(self, category: Category) -> float:
        if category is Category.SENSITIVE_OPERATION:
            return self.extended_ttl_seconds
        return self.ttl_seconds


def requires_otp_for_role(role: Union[Role, str], settings: Optional[Settings] = None) -> bool:
    """
    Whether users with ``role`` must pass an OTP step at login.

    ADMIN, ANALYST and GOVERNMENT by default; see OTP_REQUIRED_ROLES.
    """
    s = settings or default_settings
    name = role.value if isinstance(role, Role) else str(role).strip().upper()
    return name in s.OTP_REQUIRED_ROLES
