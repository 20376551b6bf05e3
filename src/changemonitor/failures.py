"""Fan-out of pipeline failures to registered callbacks."""
from __future__ import annotations

import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)

FailureCallback = Callable[[BaseException], None]


class FailureReporter:
    """Delivers each pipeline failure once to every registered callback."""

    def __init__(self) -> None:
        self._callbacks: List[FailureCallback] = []
        self._lock = threading.Lock()

    def register(self, callback: FailureCallback) -> FailureCallback:
        with self._lock:
            self._callbacks.append(callback)
        return callback

    def unregister(self, callback: FailureCallback) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                logger.debug("Failure callback %r was not registered", callback)

    def report(self, error: BaseException) -> None:
        """Hand ``error`` to the subscribers, or log it when nobody listens."""

        with self._lock:
            callbacks = list(self._callbacks)

        if not callbacks:
            logger.error("Unhandled monitor failure: %s", error, exc_info=error)
            return

        for callback in callbacks:
            try:
                callback(error)
            except Exception:  # pragma: no cover - protective logging
                logger.exception("Failure callback %r raised while handling %s", callback, error)
