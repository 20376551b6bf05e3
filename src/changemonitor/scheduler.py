"""Quiet-window scheduling of store drains."""
from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from .errors import ActionExecutionError, SchedulingFault
from .failures import FailureReporter
from .store import CoalescingStore

logger = logging.getLogger(__name__)

DEFAULT_QUIET_WINDOW = 0.2
MAX_DELAY_FACTOR = 10


class DebounceScheduler:
    """Drains the store once no new change has arrived for ``quiet_window`` seconds.

    Every call to :meth:`arm` restarts a single timer, but never past
    ``max_delay`` seconds after the first arm following the previous drain, so a
    path that never settles cannot hold back the rest of the batch. When the
    timer fires, the pending actions are swapped out of the store and invoked
    one by one; drains never overlap. A change that lands after the swap is
    picked up by the timer its own ``arm`` call started.
    """

    def __init__(
        self,
        store: CoalescingStore,
        reporter: FailureReporter,
        *,
        quiet_window: float = DEFAULT_QUIET_WINDOW,
        max_delay: Optional[float] = None,
    ):
        if quiet_window <= 0:
            raise ValueError("quiet_window must be positive")
        if max_delay is None:
            max_delay = quiet_window * MAX_DELAY_FACTOR
        if max_delay < quiet_window:
            raise ValueError("max_delay must not be shorter than quiet_window")
        self._store = store
        self._reporter = reporter
        self._quiet_window = quiet_window
        self._max_delay = max_delay
        self._window_opened_at: Optional[float] = None
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()
        self._drain_lock = threading.Lock()
        self._closed = False

    @property
    def quiet_window(self) -> float:
        return self._quiet_window

    @property
    def max_delay(self) -> float:
        return self._max_delay

    @property
    def closed(self) -> bool:
        with self._timer_lock:
            return self._closed

    @property
    def pending(self) -> bool:
        with self._timer_lock:
            return self._timer is not None and self._timer.is_alive()

    def arm(self) -> bool:
        """Restart the quiet window. Returns ``False`` once the scheduler is closed."""

        with self._timer_lock:
            if self._closed:
                logger.debug("Scheduler closed; not arming a drain")
                return False
            now = time.monotonic()
            if self._window_opened_at is None:
                self._window_opened_at = now
            remaining = self._window_opened_at + self._max_delay - now
            if remaining <= 0 and self._timer is not None and self._timer.is_alive():
                return True
            delay = max(min(self._quiet_window, remaining), 0.0)
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(delay, self.fire)
            timer.daemon = True
            self._timer = timer
            timer.start()
        return True

    def fire(self) -> None:
        """Timer callback; nothing raised here may escape the timer thread."""

        try:
            self.drain()
        except Exception as exc:
            self._reporter.report(SchedulingFault(exc))

    def drain(self) -> int:
        """Invoke every pending action and return how many were run."""

        with self._drain_lock:
            with self._timer_lock:
                self._window_opened_at = None
            actions = self._store.drain_all()
            if not actions:
                logger.debug("Drain found no pending actions")
                return 0

            logger.debug("Draining %s pending actions", len(actions))
            failures = 0
            for fingerprint, action in actions.items():
                try:
                    action()
                except Exception as exc:
                    failures += 1
                    self._reporter.report(ActionExecutionError(fingerprint, exc))

            if failures:
                logger.info("Drained %s actions, %s failed", len(actions), failures)
            return len(actions)

    def flush(self) -> int:
        """Cancel the pending timer and drain synchronously on this thread."""

        self._cancel_timer()
        return self.drain()

    def close(self, *, flush: bool = False) -> int:
        """Stop accepting new arms; optionally drain what is still pending."""

        with self._timer_lock:
            self._closed = True
        self._cancel_timer()
        if flush:
            return self.drain()
        return 0

    def _cancel_timer(self) -> None:
        with self._timer_lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
