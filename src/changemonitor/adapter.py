"""Bridge from watchdog notifications to change records."""
from __future__ import annotations

import logging
import os
import threading
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, FrozenSet, Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from .events import ChangeKind, ChangeRecord

logger = logging.getLogger(__name__)

ChangeSink = Callable[[ChangeRecord], object]
ObserverFactory = Callable[[], BaseObserver]

_KIND_BY_EVENT_TYPE = {
    EVENT_TYPE_CREATED: ChangeKind.CREATED,
    EVENT_TYPE_MODIFIED: ChangeKind.MODIFIED,
    EVENT_TYPE_DELETED: ChangeKind.DELETED,
    EVENT_TYPE_MOVED: ChangeKind.RENAMED,
}

_JOIN_TIMEOUT = 10.0


class _ChangeEventHandler(FileSystemEventHandler):
    def __init__(self, adapter: "NotificationAdapter"):
        super().__init__()
        self._adapter = adapter

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._adapter.handle_event(event)


class NotificationAdapter:
    """Subscribes to a directory tree and forwards each change to ``sink``.

    Callbacks run on the observer's thread. The observer is acquired by
    :meth:`start` and released exactly once by :meth:`stop`.
    """

    def __init__(
        self,
        root_path: Path,
        sink: ChangeSink,
        *,
        name_filter: str = "*",
        kinds: FrozenSet[ChangeKind] = frozenset(ChangeKind),
        use_polling: bool = False,
        poll_interval: float = 1.0,
        observer_factory: Optional[ObserverFactory] = None,
    ):
        self._root_path = Path(root_path)
        self._sink = sink
        self._name_filter = name_filter
        self._kinds = frozenset(kinds)
        self._use_polling = use_polling
        self._poll_interval = poll_interval
        self._observer_factory = observer_factory
        self._observer: Optional[BaseObserver] = None
        self._lock = threading.Lock()

    @property
    def is_watching(self) -> bool:
        with self._lock:
            return self._observer is not None

    def start(self) -> None:
        with self._lock:
            if self._observer is not None:
                logger.warning("Already watching %s", self._root_path)
                return
            if not self._root_path.is_dir():
                raise FileNotFoundError(f"Watch root does not exist: {self._root_path}")

            observer = self._create_observer()
            observer.schedule(_ChangeEventHandler(self), str(self._root_path), recursive=True)
            observer.start()
            self._observer = observer
        logger.info("Watching %s (filter=%s)", self._root_path, self._name_filter)

    def stop(self) -> None:
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is None:
            return
        try:
            observer.stop()
        finally:
            observer.join(timeout=_JOIN_TIMEOUT)
            logger.info("Stopped watching %s", self._root_path)

    def handle_event(self, event: FileSystemEvent) -> Optional[ChangeRecord]:
        """Translate a raw watchdog event and pass it on; returns the record sent."""

        record = self.translate(event)
        if record is None:
            return None
        try:
            self._sink(record)
        except Exception:  # pragma: no cover - protective logging
            logger.exception("Change sink failed for %s", record.describe())
        return record

    def translate(self, event: FileSystemEvent) -> Optional[ChangeRecord]:
        kind = _KIND_BY_EVENT_TYPE.get(event.event_type)
        if kind is None or kind not in self._kinds:
            return None
        # Directory mtime updates accompany every child change.
        if kind is ChangeKind.MODIFIED and event.is_directory:
            return None

        src_path = Path(os.fsdecode(event.src_path))
        if kind is ChangeKind.RENAMED:
            dest_path = Path(os.fsdecode(event.dest_path))
            if not (self._matches(dest_path) or self._matches(src_path)):
                return None
            return ChangeRecord(
                kind=kind,
                path=dest_path,
                previous_path=src_path,
                is_directory=event.is_directory,
            )

        if not self._matches(src_path):
            return None
        return ChangeRecord(kind=kind, path=src_path, is_directory=event.is_directory)

    def _matches(self, path: Path) -> bool:
        return fnmatch(path.name, self._name_filter)

    def _create_observer(self) -> BaseObserver:
        if self._observer_factory is not None:
            return self._observer_factory()
        if self._use_polling:
            logger.debug("Using polling observer (interval: %ss)", self._poll_interval)
            return PollingObserver(timeout=self._poll_interval)
        return Observer()
