"""
OTP value objects.

Entries and attempt records are immutable; an update is a replacement in the
owning store.
"""

import enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from agri_otp.core.exceptions import InvalidCategory


class Category(str, enum.Enum):
    """
    Use-case classification of an issued code.

    Controls code length and lifetime:
    - ADMIN_OPERATION: long code, standard lifetime
    - SENSITIVE_OPERATION: standard code, extended lifetime
    - everything else: standard code, standard lifetime
    """
    STANDARD = "standard"
    FARMING_OPERATION = "farming_operation"
    BUYING_OPERATION = "buying_operation"
    ANALYSIS_OPERATION = "analysis_operation"
    GOVERNMENT_OPERATION = "government_operation"
    ADMIN_OPERATION = "admin_operation"
    SENSITIVE_OPERATION = "sensitive_operation"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: Union["Category", str]) -> "Category":
        """
        Resolve a category from an enum member, its value or its name.

        Matching is case-insensitive, so "ADMIN_OPERATION" and
        "admin_operation" both resolve.

        Raises:
            InvalidCategory: If nothing matches
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value == wanted:
                    return member
        raise InvalidCategory(value)


_DISPLAY_NAMES = {
    Category.STANDARD: "Standard Login",
    Category.FARMING_OPERATION: "Farming Operation",
    Category.BUYING_OPERATION: "Buying Operation",
    Category.ANALYSIS_OPERATION: "Analysis Operation",
    Category.GOVERNMENT_OPERATION: "Government Operation",
    Category.ADMIN_OPERATION: "Administrative Operation",
    Category.SENSITIVE_OPERATION: "Sensitive Operation",
}


class Role(str, enum.Enum):
    """User roles of the agricultural platform"""
    FARMER = "FARMER"
    BUYER = "BUYER"
    ADMIN = "ADMIN"
    ANALYST = "ANALYST"
    GOVERNMENT = "GOVERNMENT"

    @property
    def otp_category(self) -> Category:
        """Category used when a user of this role is sent a code"""
        return _ROLE_CATEGORIES[self]


_ROLE_CATEGORIES = {
    Role.FARMER: Category.FARMING_OPERATION,
    Role.BUYER: Category.BUYING_OPERATION,
    Role.ADMIN: Category.ADMIN_OPERATION,
    Role.ANALYST: Category.ANALYSIS_OPERATION,
    Role.GOVERNMENT: Category.GOVERNMENT_OPERATION,
}


class CodeEntry(BaseModel):
    """
    The single active code held for an identity.

    A code is expired once ``now > issued_at + ttl_seconds``. The boundary
    instant itself is still valid.
    """
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1)
    issued_at: float
    category: Category
    ttl_seconds: float = Field(..., gt=0)

    @property
    def expires_at(self) -> float:
        return self.issued_at + self.ttl_seconds

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def remaining_seconds(self, now: float) -> float:
        return max(0.0, self.expires_at - now)

    def __repr__(self) -> str:
        # Never render the code itself
        return (
            f"CodeEntry(category={self.category.name}, issued_at={self.issued_at}, "
            f"ttl_seconds={self.ttl_seconds})"
        )

    __str__ = __repr__


class AttemptRecord(BaseModel):
    """Consecutive failed verifications for an identity"""
    model_config = ConfigDict(frozen=True)

    failure_count: int = Field(..., ge=0)
    last_failure_at: float

    def window_expired(self, now: float, window_seconds: float) -> bool:
        return now > self.last_failure_at + window_seconds
