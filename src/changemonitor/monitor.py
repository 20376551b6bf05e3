"""Filesystem monitor wiring notifications into the coalescing pipeline."""
from __future__ import annotations

import logging
import threading
from typing import Optional, Union

from .actions import ActionFactory, FactoryFunction
from .adapter import NotificationAdapter, ObserverFactory
from .config import MonitorConfig
from .events import ChangeRecord
from .failures import FailureCallback, FailureReporter
from .pipeline import ChangePipeline, PipelineStats

logger = logging.getLogger(__name__)


class FileSystemMonitor:
    """Watches a directory tree and runs debounced actions for its changes."""

    def __init__(
        self,
        config: MonitorConfig,
        factory: Union[ActionFactory, FactoryFunction],
        *,
        reporter: Optional[FailureReporter] = None,
        observer_factory: Optional[ObserverFactory] = None,
    ):
        self._config = config
        self._pipeline = ChangePipeline(
            factory,
            reporter=reporter,
            quiet_window=config.quiet_window,
            max_delay=config.max_delay,
        )
        self._adapter = NotificationAdapter(
            config.root_path,
            self._pipeline.submit,
            name_filter=config.name_filter,
            kinds=config.kinds,
            use_polling=config.use_polling,
            poll_interval=config.poll_interval,
            observer_factory=observer_factory,
        )
        self._stop_event = threading.Event()
        self._stop_lock = threading.Lock()
        self._stopped = False

    @property
    def pipeline(self) -> ChangePipeline:
        return self._pipeline

    @property
    def reporter(self) -> FailureReporter:
        return self._pipeline.reporter

    def on_failure(self, callback: FailureCallback) -> FailureCallback:
        return self._pipeline.reporter.register(callback)

    def submit(self, record: ChangeRecord) -> bool:
        return self._pipeline.submit(record)

    def start(self) -> None:
        """Begin observing the configured root path."""

        self._adapter.start()

    def request_stop(self) -> None:
        """Ask :meth:`run` to return; safe to call from a signal handler."""

        self._stop_event.set()

    def stop(self) -> None:
        """Release the subscription and settle pending work; safe to call twice."""

        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True
        self._stop_event.set()
        try:
            self._adapter.stop()
        finally:
            drained = self._pipeline.scheduler.close(flush=self._config.flush_on_stop)
            if drained:
                logger.info("Ran %s pending actions during shutdown", drained)

    def run(self) -> None:
        """Watch until :meth:`stop` is called or the process is interrupted."""

        logger.info("Starting monitor for %s", self._config.root_path)
        try:
            self.start()
            while not self._stop_event.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            logger.info("Monitor interrupted by user")
        finally:
            self.stop()
            stats = self.stats()
            logger.info(
                "Monitor stopped after %s queued changes (%s superseded, %s ignored, %s factory failures)",
                stats.submitted,
                stats.superseded,
                stats.ignored,
                stats.factory_failures,
            )

    def stats(self) -> PipelineStats:
        return self._pipeline.stats()

    def __enter__(self) -> "FileSystemMonitor":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
