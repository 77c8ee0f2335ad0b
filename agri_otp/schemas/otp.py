"""
Pydantic schemas for callers of the OTP service.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, Optional
import re

from agri_otp.models.otp import Category


class IssueCodeRequest(BaseModel):
    """Request to issue a code for an identity"""
    identity: str = Field(..., min_length=1, description="Email or other identity key")
    category: Category = Category.STANDARD

    @field_validator('identity')
    @classmethod
    def validate_identity(cls, v: str) -> str:
        """Normalize identity to trimmed lower case"""
        v = v.strip().lower()
        if not v:
            raise ValueError('Identity cannot be blank')
        return v

    @field_validator('category', mode='before')
    @classmethod
    def parse_category(cls, v):
        """Accept category names as well as values"""
        return Category.parse(v) if isinstance(v, str) else v


class IssueCodeResponse(BaseModel):
    """Response after issuing a code. The code itself is delivered out of band."""
    identity: str
    category: Category
    code_length: int
    expires_in_seconds: int


class VerifyCodeRequest(BaseModel):
    """Request to verify a numeric code"""
    identity: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, max_length=16, description="Numeric one-time code")
    category: Optional[Category] = None

    @field_validator('identity')
    @classmethod
    def validate_identity(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError('Identity cannot be blank')
        return v

    @field_validator('code')
    @classmethod
    def validate_code_format(cls, v: str) -> str:
        """Ensure code is digits only"""
        v = v.strip()
        if not re.match(r'^\d+$', v):
            raise ValueError('Code must contain digits only')
        return v

    @field_validator('category', mode='before')
    @classmethod
    def parse_category(cls, v):
        return Category.parse(v) if isinstance(v, str) else v


class VerificationResponse(BaseModel):
    """Response after verification attempt"""
    success: bool
    message: str


class OtpStatistics(BaseModel):
    """Snapshot of the in-memory OTP state"""
    active_codes: int
    locked_identities: int
    total_attempt_records: int
    codes_by_category: Dict[str, int] = Field(default_factory=dict)
