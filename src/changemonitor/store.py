"""Thread-safe map of pending actions keyed by change fingerprint."""
from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable

from .events import Action, Fingerprint

logger = logging.getLogger(__name__)


class CoalescingStore:
    """Holds at most one pending action per fingerprint until drained."""

    def __init__(self) -> None:
        self._pending: Dict[Fingerprint, Action] = {}
        self._lock = threading.Lock()

    def upsert(
        self,
        fingerprint: Fingerprint,
        action: Action,
        *,
        obsoletes: Iterable[Fingerprint] = (),
    ) -> bool:
        """Insert or replace the action for ``fingerprint``.

        Entries listed in ``obsoletes`` are discarded in the same step. Returns
        ``True`` when an earlier pending action was superseded.
        """

        with self._lock:
            superseded = fingerprint in self._pending
            for stale in obsoletes:
                if self._pending.pop(stale, None) is not None:
                    superseded = True
            self._pending[fingerprint] = action
        if superseded:
            logger.debug("Superseded pending action for %s", fingerprint)
        return superseded

    def drain_all(self) -> Dict[Fingerprint, Action]:
        """Swap the pending map for an empty one and return the old contents."""

        with self._lock:
            drained, self._pending = self._pending, {}
        return drained

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._pending
