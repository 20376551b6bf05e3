"""Submission path from change records to coalesced, scheduled actions."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Optional, Union

from .actions import ActionFactory, FactoryFunction, as_action_factory
from .errors import FactoryError
from .events import ChangeRecord
from .failures import FailureReporter
from .scheduler import DEFAULT_QUIET_WINDOW, DebounceScheduler
from .store import CoalescingStore

logger = logging.getLogger(__name__)


@dataclass
class PipelineStats:
    """Counters kept by the pipeline for observability."""

    submitted: int = 0
    ignored: int = 0
    superseded: int = 0
    factory_failures: int = 0
    rejected: int = 0


class ChangePipeline:
    """Derives actions for incoming changes and queues them behind the quiet window."""

    def __init__(
        self,
        factory: Union[ActionFactory, FactoryFunction],
        *,
        reporter: Optional[FailureReporter] = None,
        store: Optional[CoalescingStore] = None,
        quiet_window: float = DEFAULT_QUIET_WINDOW,
        max_delay: Optional[float] = None,
    ):
        self._factory = as_action_factory(factory)
        self.reporter = reporter or FailureReporter()
        self.store = store or CoalescingStore()
        self.scheduler = DebounceScheduler(
            self.store,
            self.reporter,
            quiet_window=quiet_window,
            max_delay=max_delay,
        )
        self._stats = PipelineStats()
        self._stats_lock = threading.Lock()

    def submit(self, record: ChangeRecord) -> bool:
        """Queue the action for ``record``; returns ``False`` if nothing was queued."""

        try:
            action = self._factory.create_action(record)
        except Exception as exc:
            self._count("factory_failures")
            self.reporter.report(FactoryError(record, exc))
            return False

        if action is None:
            self._count("ignored")
            logger.debug("No action for %s", record.describe())
            return False

        if self.scheduler.closed:
            self._count("rejected")
            logger.debug("Scheduler closed; rejecting %s", record.describe())
            return False

        superseded = self.store.upsert(record.fingerprint, action, obsoletes=record.obsoletes)
        self._count("submitted")
        if superseded:
            self._count("superseded")
        if not self.scheduler.arm():
            self._count("rejected")
            return False
        return True

    def stats(self) -> PipelineStats:
        with self._stats_lock:
            return replace(self._stats)

    def _count(self, name: str) -> None:
        with self._stats_lock:
            setattr(self._stats, name, getattr(self._stats, name) + 1)
