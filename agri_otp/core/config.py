from pydantic_settings import BaseSettings
from typing import List, Union
from pydantic import field_validator
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    PROJECT_NAME: str = "Smart Agricultural OTP Service"

    # Code shape
    OTP_CODE_LENGTH: int = 6
    OTP_ADMIN_CODE_LENGTH: int = 8

    # Code lifetime
    OTP_TTL_SECONDS: int = 300
    OTP_EXTENDED_TTL_SECONDS: int = 600

    # Failed attempt lockout
    OTP_MAX_FAILED_ATTEMPTS: int = 3
    OTP_LOCKOUT_WINDOW_SECONDS: int = 900

    # Background sweeps
    OTP_JANITOR_ENABLED: bool = True
    OTP_ENTRY_SWEEP_INTERVAL_SECONDS: float = 120
    OTP_ATTEMPT_SWEEP_INTERVAL_SECONDS: float = 300

    # Roles that must pass an OTP step at login - can be set as JSON string in .env
    OTP_REQUIRED_ROLES: Union[List[str], str] = ["ADMIN", "ANALYST", "GOVERNMENT"]

    # Logging
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    @field_validator(
        "OTP_CODE_LENGTH",
        "OTP_ADMIN_CODE_LENGTH",
        "OTP_TTL_SECONDS",
        "OTP_EXTENDED_TTL_SECONDS",
        "OTP_MAX_FAILED_ATTEMPTS",
        "OTP_LOCKOUT_WINDOW_SECONDS",
        "OTP_ENTRY_SWEEP_INTERVAL_SECONDS",
        "OTP_ATTEMPT_SWEEP_INTERVAL_SECONDS",
    )
    @classmethod
    def must_be_positive(cls, v):
        """Lengths, lifetimes, thresholds and periods must all be > 0"""
        if v <= 0:
            raise ValueError("must be a positive number")
        return v

    @field_validator("OTP_REQUIRED_ROLES", mode="before")
    @classmethod
    def parse_required_roles(cls, v: Union[List[str], str]) -> List[str]:
        """Parse required roles from JSON string or list"""
        if isinstance(v, str):
            try:
                roles = json.loads(v)
            except json.JSONDecodeError:
                # If not valid JSON, split by comma
                roles = v.split(",")
        else:
            roles = v
        return [str(role).strip().upper() for role in roles if str(role).strip()]

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
