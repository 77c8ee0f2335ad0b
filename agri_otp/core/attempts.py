"""
Failed verification tracking with a sliding lockout window.

An identity is locked once it accumulates ``threshold`` failures and stays
locked until ``window_seconds`` after its most recent failure. When the window
lapses the record is discarded outright; counts are never decremented.
"""

import logging
import threading
from typing import Dict, Optional

from agri_otp.models.otp import AttemptRecord

logger = logging.getLogger(__name__)


class AttemptTracker:
    """
    Thread-safe map of identity -> AttemptRecord.

    Args:
        threshold: Failures that trigger a lockout (3 in the reference policy)
        window_seconds: Lockout window measured from the last failure
    """

    def __init__(self, threshold: int = 3, window_seconds: float = 15 * 60):
        if threshold <= 0:
            raise ValueError("threshold must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.threshold = threshold
        self.window_seconds = window_seconds
        self._records: Dict[str, AttemptRecord] = {}
        self._lock = threading.Lock()

    def _live_record(self, identity: str, now: float) -> Optional[AttemptRecord]:
        # Caller holds self._lock
        record = self._records.get(identity)
        if record is not None and record.window_expired(now, self.window_seconds):
            del self._records[identity]
            return None
        return record

    def record_failure(self, identity: str, now: float) -> AttemptRecord:
        """
        Count a failed verification.

        Starts a fresh record when none exists or the previous window lapsed;
        otherwise increments the count and moves the window to ``now``. A
        failure while already locked therefore extends the lock.

        Returns:
            AttemptRecord: The record now stored for the identity
        """
        with self._lock:
            current = self._live_record(identity, now)
            count = 1 if current is None else current.failure_count + 1
            record = AttemptRecord(failure_count=count, last_failure_at=now)
            self._records[identity] = record

        if count >= self.threshold:
            logger.warning(f"Account locked for email: {identity} after {count} failed attempts")
        return record

    def get(self, identity: str, now: float) -> Optional[AttemptRecord]:
        with self._lock:
            return self._live_record(identity, now)

    def is_locked(self, identity: str, now: float) -> bool:
        record = self.get(identity, now)
        return record is not None and record.failure_count >= self.threshold

    def lockout_remaining_seconds(self, identity: str, now: float) -> float:
        """Seconds until the lock lifts, or 0.0 when not locked."""
        record = self.get(identity, now)
        if record is None or record.failure_count < self.threshold:
            return 0.0
        return max(0.0, record.last_failure_at + self.window_seconds - now)

    def clear(self, identity: str) -> bool:
        with self._lock:
            return self._records.pop(identity, None) is not None

    def sweep(self, now: float) -> int:
        """
        Remove records whose window has lapsed.

        Returns:
            int: Number of records removed
        """
        with self._lock:
            expired = [
                key for key, record in self._records.items()
                if record.window_expired(now, self.window_seconds)
            ]
            for key in expired:
                del self._records[key]
        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired attempt records")
        return len(expired)

    def locked_count(self, now: float) -> int:
        with self._lock:
            return sum(
                1 for record in self._records.values()
                if record.failure_count >= self.threshold
                and not record.window_expired(now, self.window_seconds)
            )

    def clear_all(self) -> int:
        with self._lock:
            count = len(self._records)
            self._records.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
