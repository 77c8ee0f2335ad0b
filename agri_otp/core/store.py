"""
In-memory store of active codes, one per identity.

Every operation runs under a single lock, so a sweep can never remove an
entry that is being replaced at the same moment.
"""

import logging
import threading
from collections import Counter
from typing import Dict, Optional

from agri_otp.models.otp import Category, CodeEntry

logger = logging.getLogger(__name__)


class EntryStore:
    def __init__(self):
        self._entries: Dict[str, CodeEntry] = {}
        self._lock = threading.Lock()

    def put(self, identity: str, entry: CodeEntry) -> Optional[CodeEntry]:
        """
        Store ``entry`` for ``identity``, replacing whatever was there.

        Returns:
            The replaced entry, if any
        """
        with self._lock:
            previous = self._entries.get(identity)
            self._entries[identity] = entry
        return previous

    def get(self, identity: str) -> Optional[CodeEntry]:
        """Return the stored entry whether or not it has expired."""
        with self._lock:
            return self._entries.get(identity)

    def remove(self, identity: str) -> bool:
        with self._lock:
            return self._entries.pop(identity, None) is not None

    def sweep(self, now: float) -> int:
        """
        Remove every entry with ``now > issued_at + ttl``.

        Returns:
            int: Number of entries removed
        """
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired OTPs")
        return len(expired)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def count_by_category(self) -> Dict[Category, int]:
        with self._lock:
            return dict(Counter(entry.category for entry in self._entries.values()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
