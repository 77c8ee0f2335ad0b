"""
Core OTP issuance and verification logic.

Handles generation, validation, lockout and lifecycle management of one-time
codes held in process memory.

Per identity, issue/verify/invalidate run under a striped lock so they are
observed in real-time order. Different identities proceed in parallel.
"""

import enum
import logging
import math
import secrets
import threading
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from apscheduler.schedulers.background import BackgroundScheduler

from agri_otp.core.attempts import AttemptTracker
from agri_otp.core.clock import Clock, SystemClock
from agri_otp.core.codes import CodeGenerator
from agri_otp.core.exceptions import InvalidIdentity, LockedOut
from agri_otp.core.janitor import create_janitor
from agri_otp.core.policy import OtpPolicy
from agri_otp.core.store import EntryStore
from agri_otp.models.otp import Category, CodeEntry, Role
from agri_otp.schemas.otp import (
    IssueCodeRequest,
    IssueCodeResponse,
    OtpStatistics,
    VerificationResponse,
    VerifyCodeRequest,
)

logger = logging.getLogger(__name__)

CategoryLike = Union[Category, str]


class FailureReason(str, enum.Enum):
    """Why a verification failed. Logged only, never returned to callers."""
    LOCKED_OUT = "locked_out"
    NO_ACTIVE_CODE = "no_active_code"
    EXPIRED = "expired"
    CATEGORY_MISMATCH = "category_mismatch"
    MISMATCH = "mismatch"


def normalize_identity(identity: Optional[str]) -> str:
    """
    Trim and lower-case an identity.

    Raises:
        InvalidIdentity: If identity is None, not a string, or blank
    """
    if not isinstance(identity, str) or not identity.strip():
        raise InvalidIdentity()
    return identity.strip().lower()


class _LockStripes:
    """Fixed pool of locks; an identity always maps to the same one."""

    def __init__(self, stripes: int = 64):
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]

    def for_identity(self, identity: str) -> threading.Lock:
        return self._locks[hash(identity) % len(self._locks)]


class OtpService:
    """
    Issues and verifies one-time codes.

    The service exclusively owns its entry store and attempt tracker; the
    janitor reaches them only through the sweep methods below.

    Args:
        policy: Lengths, lifetimes and lockout settings
        clock: Time source (defaults to wall clock)
        generator: Code generator (defaults to a secure random source)
    """

    def __init__(
        self,
        policy: Optional[OtpPolicy] = None,
        clock: Optional[Clock] = None,
        generator: Optional[CodeGenerator] = None,
    ):
        self.policy = policy or OtpPolicy.from_settings()
        self._clock = clock or SystemClock()
        self._generator = generator or CodeGenerator()
        self._entries = EntryStore()
        self._attempts = AttemptTracker(
            threshold=self.policy.max_failed_attempts,
            window_seconds=self.policy.lockout_window_seconds,
        )
        self._locks = _LockStripes()
        self._janitor: Optional[BackgroundScheduler] = None

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue_code(self, identity: str, category: CategoryLike = Category.STANDARD) -> str:
        """
        Generate a new code for an identity.

        - Rejects locked identities
        - Replaces any previous code for the identity
        - Does not touch the failed attempt counter

        Args:
            identity: Email or other identity key
            category: Use-case category; decides code length and lifetime

        Returns:
            str: The plaintext code. Delivery is the caller's job.

        Raises:
            InvalidIdentity: Identity is empty
            InvalidCategory: Category string is unknown
            LockedOut: Too many failed attempts within the lockout window
        """
        key = normalize_identity(identity)
        category = Category.parse(category)

        with self._locks.for_identity(key):
            now = self._clock.now()
            if self._attempts.is_locked(key, now):
                minutes = self._remaining_minutes(key, now)
                logger.warning(f"OTP generation blocked: Account locked for email: {key}")
                raise LockedOut(key, minutes)

            ttl = self.policy.ttl_for(category)
            code = self._generator.generate(self.policy.code_length_for(category))
            entry = CodeEntry(code=code, issued_at=now, category=category, ttl_seconds=ttl)
            replaced = self._entries.put(key, entry)

        expires = datetime.fromtimestamp(entry.expires_at, tz=timezone.utc)
        logger.info(
            f"OTP generated for email: {key} (type: {category.name}, "
            f"expires at: {expires.strftime('%Y-%m-%d %H:%M:%S')} UTC)"
        )
        if replaced is not None:
            logger.debug(f"Previous OTP for {key} replaced (type: {replaced.category.name})")
        return code

    def issue_farming_code(self, identity: str) -> str:
        return self.issue_code(identity, Category.FARMING_OPERATION)

    def issue_buying_code(self, identity: str) -> str:
        return self.issue_code(identity, Category.BUYING_OPERATION)

    def issue_analysis_code(self, identity: str) -> str:
        return self.issue_code(identity, Category.ANALYSIS_OPERATION)

    def issue_government_code(self, identity: str) -> str:
        return self.issue_code(identity, Category.GOVERNMENT_OPERATION)

    def issue_admin_code(self, identity: str) -> str:
        return self.issue_code(identity, Category.ADMIN_OPERATION)

    def issue_sensitive_code(self, identity: str) -> str:
        return self.issue_code(identity, Category.SENSITIVE_OPERATION)

    def issue_code_for_role(self, identity: str, role: Union[Role, str]) -> str:
        """Issue a code in the category that belongs to the user's role."""
        role = Role(role.strip().upper()) if isinstance(role, str) else role
        return self.issue_code(identity, role.otp_category)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_code(
        self,
        identity: str,
        code: Optional[str],
        category: Optional[CategoryLike] = None,
    ) -> bool:
        """
        Verify a submitted code.

        Security checks, in order:
        - Locked identities are rejected without touching the counter
        - Missing code counts as a failure
        - Expired code is removed and counts as a failure
        - If ``category`` is given it must match the stored one; a mismatch
          counts as a failure and leaves the stored code in place
        - Wrong code counts as a failure
        - On success the code is consumed and the failure counter cleared

        Every failure returns False; the reason is only logged.

        Raises:
            InvalidIdentity: Identity is empty
            InvalidCategory: Category string is unknown
        """
        key = normalize_identity(identity)
        expected = Category.parse(category) if category is not None else None

        if not isinstance(code, str) or not code.strip():
            logger.error("Cannot validate OTP: OTP is null or empty")
            return False
        submitted = code.strip()

        with self._locks.for_identity(key):
            now = self._clock.now()

            if self._attempts.is_locked(key, now):
                self._log_failure(key, FailureReason.LOCKED_OUT)
                return False

            entry = self._entries.get(key)
            if entry is None:
                return self._fail(key, now, FailureReason.NO_ACTIVE_CODE)

            if entry.is_expired(now):
                self._entries.remove(key)
                return self._fail(key, now, FailureReason.EXPIRED)

            if expected is not None and entry.category is not expected:
                logger.warning(
                    f"OTP type mismatch for email: {key}. "
                    f"Expected: {expected.name}, Found: {entry.category.name}"
                )
                return self._fail(key, now, FailureReason.CATEGORY_MISMATCH)

            if not secrets.compare_digest(entry.code.encode(), submitted.encode()):
                return self._fail(key, now, FailureReason.MISMATCH)

            self._entries.remove(key)
            self._attempts.clear(key)

        logger.info(f"OTP validation successful for email: {key} (type: {entry.category.name})")
        return True

    def _fail(self, key: str, now: float, reason: FailureReason) -> bool:
        self._log_failure(key, reason)
        self._attempts.record_failure(key, now)
        return False

    def _log_failure(self, key: str, reason: FailureReason) -> None:
        logger.warning(f"OTP validation failed for email: {key} (reason: {reason.value})")

    # ------------------------------------------------------------------
    # Request/response helpers
    # ------------------------------------------------------------------

    def issue_from_request(self, request: IssueCodeRequest) -> Tuple[str, IssueCodeResponse]:
        """
        Issue a code from a validated request.

        Returns:
            Tuple[str, IssueCodeResponse]: (code to deliver, response safe to return)
        """
        code = self.issue_code(request.identity, request.category)
        response = IssueCodeResponse(
            identity=request.identity,
            category=request.category,
            code_length=len(code),
            expires_in_seconds=int(self.policy.ttl_for(request.category)),
        )
        return code, response

    def verify_from_request(self, request: VerifyCodeRequest) -> VerificationResponse:
        if self.verify_code(request.identity, request.code, request.category):
            return VerificationResponse(success=True, message="OTP verified successfully")
        return VerificationResponse(success=False, message="Invalid or expired OTP")

    # ------------------------------------------------------------------
    # Queries and maintenance
    # ------------------------------------------------------------------

    def invalidate(self, identity: str) -> None:
        """Drop the identity's code, if any. Failed attempts are kept."""
        key = normalize_identity(identity)
        with self._locks.for_identity(key):
            removed = self._entries.remove(key)
        if removed:
            logger.info(f"OTP cleared for email: {key}")
        else:
            logger.debug(f"No OTP found to clear for email: {key}")

    def is_locked(self, identity: str) -> bool:
        key = normalize_identity(identity)
        return self._attempts.is_locked(key, self._clock.now())

    def remaining_seconds(self, identity: str) -> int:
        """
        Whole seconds until the identity's code expires.

        Returns:
            int: -1 if no code is stored, 0 once the code has expired
        """
        key = normalize_identity(identity)
        entry = self._entries.get(key)
        if entry is None:
            return -1
        return int(entry.remaining_seconds(self._clock.now()))

    def lockout_remaining_minutes(self, identity: str) -> int:
        """Minutes (rounded up) until the lock lifts, 0 if not locked."""
        key = normalize_identity(identity)
        return self._remaining_minutes(key, self._clock.now())

    def _remaining_minutes(self, key: str, now: float) -> int:
        seconds = self._attempts.lockout_remaining_seconds(key, now)
        return math.ceil(seconds / 60) if seconds > 0 else 0

    def _active_entry(self, identity: str) -> Optional[CodeEntry]:
        key = normalize_identity(identity)
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock.now()):
            return None
        return entry

    def has_code(self, identity: str) -> bool:
        """True if the identity holds an unexpired code."""
        return self._active_entry(identity) is not None

    def has_code_of_category(self, identity: str, category: CategoryLike) -> bool:
        entry = self._active_entry(identity)
        return entry is not None and entry.category is Category.parse(category)

    def code_category(self, identity: str) -> Optional[Category]:
        entry = self._active_entry(identity)
        return entry.category if entry is not None else None

    def code_count(self) -> int:
        """Number of codes held in memory, including expired ones not yet swept."""
        return len(self._entries)

    def reset_failed_attempts(self, identity: str) -> None:
        key = normalize_identity(identity)
        with self._locks.for_identity(key):
            self._attempts.clear(key)
        logger.info(f"Reset failed attempts for email: {key}")

    def clear_all(self) -> None:
        """Empty both stores. Intended for maintenance and tests."""
        codes = self._entries.clear()
        self._attempts.clear_all()
        logger.info(f"Cleared all {codes} OTPs and attempt records from storage")

    def statistics(self) -> OtpStatistics:
        now = self._clock.now()
        return OtpStatistics(
            active_codes=len(self._entries),
            locked_identities=self._attempts.locked_count(now),
            total_attempt_records=len(self._attempts),
            codes_by_category={
                category.name: count
                for category, count in self._entries.count_by_category().items()
            },
        )

    # ------------------------------------------------------------------
    # Background sweeping
    # ------------------------------------------------------------------

    def sweep_expired_codes(self) -> int:
        return self._entries.sweep(self._clock.now())

    def sweep_expired_attempts(self) -> int:
        return self._attempts.sweep(self._clock.now())

    def sweep(self) -> Tuple[int, int]:
        """Run both sweeps now. Returns (codes removed, attempt records removed)."""
        return self.sweep_expired_codes(), self.sweep_expired_attempts()

    @property
    def janitor(self) -> Optional[BackgroundScheduler]:
        return self._janitor

    def start_janitor(
        self,
        entry_interval_seconds: float = 120,
        attempt_interval_seconds: float = 300,
    ) -> BackgroundScheduler:
        """Start periodic sweeping of both stores. Idempotent."""
        if self._janitor is None:
            self._janitor = create_janitor(
                self.sweep_expired_codes,
                self.sweep_expired_attempts,
                entry_interval_seconds=entry_interval_seconds,
                attempt_interval_seconds=attempt_interval_seconds,
            )
        return self._janitor

    def shutdown(self) -> None:
        """Stop the janitor, waiting for a running sweep to finish. In-memory state is left as is."""
        if self._janitor is not None:
            if self._janitor.running:
                self._janitor.shutdown(wait=True)
            self._janitor = None
            logger.info("OTP janitor stopped")
        logger.info("OtpService shutdown completed")
